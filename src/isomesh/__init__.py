"""
isomesh - Marching cubes isosurface extraction.

Pipeline:
- Field sampler (sphere, terrain, or caller data) -> ScalarField
- Isosurface extractor (256-case marching cubes) -> Mesh
- Normal synthesizer (area-weighted face normals) -> vertex normals
- Host adapter (scale + parallel arrays) -> trimesh renderable

Usage:
    isomesh sphere --size 32 --radius 10 --scale 0.1 --output outputs
"""

from .config import Config, SignConvention, MeshMetadata
from .field import ScalarField, InvalidInput
from .isosurface import Mesh, IsosurfaceExtractor, extract, extract_surface, merge_meshes
from .mesh_ops import synthesize_normals, compute_mesh_stats
from .assembler import RenderableArrays, to_renderable_arrays, build_trimesh, assemble
from .samplers import sphere_field, terrain_field
from .generator import MarchingCubesGenerator, SurfaceResult

__version__ = "1.0.0"

__all__ = [
    'Config', 'SignConvention', 'MeshMetadata',
    'ScalarField', 'InvalidInput',
    'Mesh', 'IsosurfaceExtractor', 'extract', 'extract_surface', 'merge_meshes',
    'synthesize_normals', 'compute_mesh_stats',
    'RenderableArrays', 'to_renderable_arrays', 'build_trimesh', 'assemble',
    'sphere_field', 'terrain_field',
    'MarchingCubesGenerator', 'SurfaceResult',
]
