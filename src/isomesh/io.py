"""
Data I/O utilities.

Loads scalar volumes and saves meshes with a JSON metadata sidecar.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import trimesh

from .config import MeshMetadata
from .field import ScalarField, InvalidInput

logger = logging.getLogger(__name__)


def load_volume(path: Path) -> ScalarField:
    """
    Load a scalar field from a .npy array shaped (depth, height, width).

    Args:
        path: Path to .npy file

    Returns:
        Validated ScalarField
    """
    path = Path(path)
    if path.suffix != ".npy":
        raise InvalidInput(f"Unsupported volume format: {path.suffix} (expected .npy)")

    volume = np.load(path, allow_pickle=False)
    logger.info(f"Loaded volume {volume.shape} from {path}")
    return ScalarField.from_volume(volume)


def save_mesh(
    mesh: "trimesh.Trimesh",
    path: Path,
    metadata: MeshMetadata
) -> None:
    """
    Save mesh (format from suffix, e.g. .glb) with metadata sidecar.

    Args:
        mesh: Trimesh mesh object
        path: Output path
        metadata: MeshMetadata object (saved as .json sidecar)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    mesh.export(str(path))
    logger.info(f"Saved mesh: {path} ({metadata.n_vertices} verts, {metadata.n_triangles} tris)")

    meta_path = path.with_suffix('.json')
    metadata.save(meta_path)
    logger.info(f"Saved metadata: {meta_path}")


def load_mesh(path: Path) -> Tuple["trimesh.Trimesh", Optional[MeshMetadata]]:
    """
    Load mesh and its metadata sidecar.

    Args:
        path: Path to mesh file

    Returns:
        Tuple of (mesh, metadata) - metadata may be None if not found
    """
    path = Path(path)
    mesh = trimesh.load(str(path), force="mesh", process=False)

    meta_path = path.with_suffix('.json')
    metadata = None
    if meta_path.exists():
        with open(meta_path) as f:
            metadata = MeshMetadata.from_dict(json.load(f))

    return mesh, metadata
