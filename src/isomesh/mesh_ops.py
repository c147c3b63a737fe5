"""
Mesh operation utilities.

Vertex normal synthesis, scaling and statistics.
"""

import numpy as np
from typing import Dict, Any
import logging

import trimesh

from .isosurface import Mesh

logger = logging.getLogger(__name__)

# Accumulated normals shorter than this have no usable direction
ZERO_NORMAL_EPS = 1e-12


def face_normals(mesh: Mesh) -> np.ndarray:
    """
    Un-normalized face normals (v1 - v0) x (v2 - v0).

    Their length is twice the triangle area.
    """
    vertices = mesh.vertices.astype(np.float64)
    faces = mesh.triangles.astype(np.int64)
    v0 = vertices[faces[:, 0]]
    v1 = vertices[faces[:, 1]]
    v2 = vertices[faces[:, 2]]
    return np.cross(v1 - v0, v2 - v0)


def synthesize_normals(mesh: Mesh) -> np.ndarray:
    """
    Compute area-weighted vertex normals from face normals.

    Each face normal is added once to each of its three vertices, so larger
    triangles weigh more. Vertices whose accumulated normal is zero (no
    incident triangles, or exactly cancelling faces) get the zero vector.

    Args:
        mesh: Extracted mesh; not modified

    Returns:
        (N, 3) float32 array aligned with mesh.vertices
    """
    normals = np.zeros((mesh.n_vertices, 3), dtype=np.float64)
    if mesh.n_triangles == 0:
        return normals.astype(np.float32)

    contributions = face_normals(mesh)
    faces = mesh.triangles.astype(np.int64)
    for corner in range(3):
        np.add.at(normals, faces[:, corner], contributions)

    norms = np.linalg.norm(normals, axis=1, keepdims=True)
    degenerate = norms[:, 0] <= ZERO_NORMAL_EPS
    normals = np.divide(normals, norms, out=np.zeros_like(normals), where=~degenerate[:, None])

    if degenerate.any():
        logger.debug(f"{int(degenerate.sum())} vertices have no normal direction, using zero vector")

    return normals.astype(np.float32)


def scale_vertices(vertices: np.ndarray, scale: float) -> np.ndarray:
    """Uniformly scale field-local vertex positions."""
    return (vertices.astype(np.float64) * scale).astype(np.float32)


def compute_mesh_stats(mesh: "trimesh.Trimesh") -> Dict[str, Any]:
    """
    Compute mesh statistics.

    Args:
        mesh: Trimesh mesh object

    Returns:
        Dictionary of mesh statistics
    """
    if len(mesh.vertices) == 0:
        return {"n_vertices": 0, "n_faces": 0}

    bounds = mesh.bounds
    extents = mesh.extents

    return {
        "n_vertices": len(mesh.vertices),
        "n_faces": len(mesh.faces),
        "bounds": {
            "min": bounds[0].tolist(),
            "max": bounds[1].tolist()
        },
        "extents": extents.tolist(),
        "max_extent": float(max(extents)),
        "surface_area": float(mesh.area),
        "is_watertight": bool(mesh.is_watertight),
        "is_winding_consistent": bool(mesh.is_winding_consistent)
    }
