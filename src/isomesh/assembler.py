"""
Host adapter: turns an extracted mesh and its normals into renderable data.

Scaling happens here and only here. Normals are direction-only and pass
through unscaled. An empty mesh is reported as "nothing to render" (None)
rather than built into a degenerate resource.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import trimesh

from .field import InvalidInput
from .isosurface import Mesh
from .mesh_ops import scale_vertices

logger = logging.getLogger(__name__)


@dataclass
class RenderableArrays:
    """Parallel arrays for a triangle-list mesh resource."""
    vertices: np.ndarray  # (N, 3) float32, scaled
    normals: np.ndarray   # (N, 3) float32
    indices: np.ndarray   # (3M,) uint32
    scale: float
    primitive: str = "triangles"

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_triangles(self) -> int:
        return len(self.indices) // 3


def to_renderable_arrays(
    mesh: Mesh,
    normals: np.ndarray,
    scale: float = 1.0
) -> Optional[RenderableArrays]:
    """
    Pack a mesh into scaled parallel arrays.

    Args:
        mesh: Mesh in field-local coordinates
        normals: Vertex normals aligned with mesh.vertices
        scale: Uniform scale applied to vertex positions

    Returns:
        RenderableArrays, or None if the mesh is empty
    """
    scale = float(scale)
    if not np.isfinite(scale):
        raise InvalidInput(f"scale must be finite, got {scale}")

    normals = np.asarray(normals, dtype=np.float32)
    if normals.shape != (mesh.n_vertices, 3):
        raise InvalidInput(
            f"Normals shape {normals.shape} does not match {mesh.n_vertices} vertices"
        )

    if mesh.is_empty:
        logger.warning("Empty mesh, nothing to render")
        return None

    return RenderableArrays(
        vertices=scale_vertices(mesh.vertices, scale),
        normals=normals.copy(),
        indices=mesh.indices.astype(np.uint32),
        scale=scale
    )


def build_trimesh(arrays: RenderableArrays) -> "trimesh.Trimesh":
    """Build an unprocessed trimesh resource from renderable arrays."""
    renderable = trimesh.Trimesh(
        vertices=arrays.vertices,
        faces=arrays.indices.reshape(-1, 3),
        vertex_normals=arrays.normals,
        process=False
    )
    logger.info(f"Built renderable mesh: {arrays.n_vertices} vertices, "
                f"{arrays.n_triangles} triangles (scale={arrays.scale})")
    return renderable


def assemble(
    mesh: Mesh,
    normals: np.ndarray,
    scale: float = 1.0
) -> Optional["trimesh.Trimesh"]:
    """Scale, pack and build a renderable mesh; None if there is nothing to render."""
    arrays = to_renderable_arrays(mesh, normals, scale)
    if arrays is None:
        return None
    return build_trimesh(arrays)
