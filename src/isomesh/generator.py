"""
Mesh Generator Module

High-level API: scalar data -> isosurface -> normals -> renderable mesh.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np
import trimesh

from .assembler import assemble
from .config import Config, DEFAULT_CONFIG
from .field import ScalarField
from .isosurface import IsosurfaceExtractor, Mesh
from .mesh_ops import synthesize_normals
from .samplers import sphere_field, terrain_field

logger = logging.getLogger(__name__)


@dataclass
class SurfaceResult:
    """Extracted mesh plus its vertex normals, before any host step."""
    mesh: Mesh
    normals: np.ndarray

    @property
    def is_empty(self) -> bool:
        return self.mesh.is_empty


class MarchingCubesGenerator:
    """
    Generates renderable meshes from 3D scalar fields.

    Entry points:
    1. generate_mesh: caller-supplied flat samples
    2. generate_sphere: demonstration sphere field
    3. generate_terrain: demonstration height-function terrain
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize mesh generator.

        Args:
            config: Extraction settings; isolevel and scale arguments to the
                generate_* methods override the configured values.
        """
        self.config = config or DEFAULT_CONFIG
        self.extractor = IsosurfaceExtractor(self.config)

    def generate(self, field: ScalarField, isolevel: Optional[float] = None) -> SurfaceResult:
        """Extract the surface and synthesize normals."""
        mesh = self.extractor.extract(field, isolevel)
        return SurfaceResult(mesh=mesh, normals=synthesize_normals(mesh))

    def generate_mesh(
        self,
        data: Union[Sequence[float], np.ndarray],
        width: int,
        height: int,
        depth: int,
        isolevel: Optional[float] = None,
        scale: Optional[float] = None
    ) -> Optional["trimesh.Trimesh"]:
        """
        Generate a mesh from a flat 3D scalar field.

        Args:
            data: Flat samples, index = z * height * width + y * width + x
            width: Width of the 3D grid
            height: Height of the 3D grid
            depth: Depth of the 3D grid
            isolevel: Surface threshold value
            scale: Scale factor for vertex positions

        Returns:
            Renderable mesh, or None if no surface crosses the isolevel

        Raises:
            InvalidInput: if the data size doesn't match the dimensions
        """
        field = ScalarField.from_samples(data, width, height, depth)
        return self._render(field, isolevel, scale)

    def generate_sphere(
        self,
        size: int,
        radius: float,
        scale: Optional[float] = None
    ) -> Optional["trimesh.Trimesh"]:
        """Generate a sphere of `radius` centred in a size^3 grid."""
        return self._render(sphere_field(size, radius), 0.0, scale)

    def generate_terrain(
        self,
        width: int,
        height: int,
        depth: int,
        scale: Optional[float] = None,
        noise_scale: float = 1.0,
        height_scale: float = 1.0
    ) -> Optional["trimesh.Trimesh"]:
        """Generate terrain from a sine/cosine height function."""
        field = terrain_field(width, height, depth, noise_scale, height_scale)
        return self._render(field, 0.0, scale)

    def _render(
        self,
        field: ScalarField,
        isolevel: Optional[float],
        scale: Optional[float]
    ) -> Optional["trimesh.Trimesh"]:
        result = self.generate(field, isolevel)

        if result.is_empty:
            logger.warning("No vertices generated - check your isolevel and data")
            return None

        return assemble(
            result.mesh,
            result.normals,
            self.config.scale if scale is None else scale
        )
