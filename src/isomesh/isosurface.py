"""
Isosurface Extraction Module

Marching cubes over a ScalarField. Every cube of the lattice is classified
against the isolevel, crossed edges are interpolated linearly and the
canonical triangle table turns them into faces.

The cube grid is processed in z-slabs. Each slab emits into its own buffers
and the slabs are merged with an index offset pass, so slabs could be handed
to separate workers without sharing any output state.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .config import Config, SignConvention, DEFAULT_CONFIG
from .field import ScalarField, InvalidInput
from .tables import (
    CORNER_OFFSETS,
    EDGE_AXIS,
    EDGE_CORNERS,
    EDGE_TABLE,
    MAX_TRIANGLES_PER_CUBE,
    TRI_TABLE,
)

logger = logging.getLogger(__name__)

_EDGE_BITS = 1 << np.arange(12, dtype=np.int64)
_START_OFFSETS = CORNER_OFFSETS[EDGE_CORNERS[:, 0]]  # (12, 3) xyz
_END_OFFSETS = CORNER_OFFSETS[EDGE_CORNERS[:, 1]]


@dataclass
class Mesh:
    """A triangle mesh in field-local lattice coordinates (pre-scale)."""
    vertices: np.ndarray   # (N, 3) float32 (x, y, z)
    triangles: np.ndarray  # (M, 3) uint32 indices into vertices

    @classmethod
    def empty(cls) -> "Mesh":
        return cls(
            vertices=np.empty((0, 3), dtype=np.float32),
            triangles=np.empty((0, 3), dtype=np.uint32)
        )

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_triangles(self) -> int:
        return len(self.triangles)

    @property
    def is_empty(self) -> bool:
        """True when the isolevel does not intersect the field."""
        return self.n_vertices == 0

    @property
    def indices(self) -> np.ndarray:
        """Flat triangle-list index buffer."""
        return self.triangles.reshape(-1)


def merge_meshes(meshes: Sequence[Mesh]) -> Mesh:
    """
    Concatenate meshes, offsetting each one's triangle indices by the
    number of vertices emitted before it.
    """
    if not meshes:
        return Mesh.empty()

    if len(meshes) == 1:
        only = meshes[0]
        return Mesh(vertices=only.vertices.copy(), triangles=only.triangles.copy())

    offsets = np.cumsum([0] + [m.n_vertices for m in meshes[:-1]])
    vertices = np.concatenate([m.vertices for m in meshes]).astype(np.float32)
    triangles = np.concatenate([
        m.triangles.astype(np.int64) + offset
        for m, offset in zip(meshes, offsets)
    ])
    return Mesh(vertices=vertices, triangles=triangles.astype(np.uint32))


def _interpolate(
    p0: np.ndarray,
    p1: np.ndarray,
    v0: np.ndarray,
    v1: np.ndarray,
    isolevel: float
) -> np.ndarray:
    """Crossing points along edges p0 -> p1; midpoint where v0 == v1."""
    delta = v1 - v0
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.where(delta != 0, (isolevel - v0) / delta, 0.5)
    t = np.clip(t, 0.0, 1.0)
    return p0 + t[:, None] * (p1 - p0)


def _extract_slab(
    volume: np.ndarray,
    isolevel: float,
    z0: int,
    z1: int
) -> Tuple[Mesh, np.ndarray]:
    """
    Run marching cubes over cube layers [z0, z1).

    Returns the slab's mesh and, per vertex, the canonical identity of the
    edge it was interpolated on: flat index of the edge's lower lattice
    point * 3 + axis.
    """
    depth, height, width = volume.shape
    ny, nx = height - 1, width - 1

    # Bit i set when corner i is below the isolevel
    case = np.zeros((z1 - z0, ny, nx), dtype=np.int64)
    for bit, (dx, dy, dz) in enumerate(CORNER_OFFSETS):
        corner = volume[z0 + dz:z1 + dz, dy:dy + ny, dx:dx + nx]
        case |= (corner.astype(np.float64) < isolevel).astype(np.int64) << bit

    # Row-major nonzero keeps cubes ordered z-slowest, x-fastest
    cz, cy, cx = np.nonzero(EDGE_TABLE[case])
    if cz.size == 0:
        return Mesh.empty(), np.empty(0, dtype=np.int64)

    cases = case[cz, cy, cx]
    crossed = (EDGE_TABLE[cases][:, None] & _EDGE_BITS) != 0  # (n, 12)

    origin = np.stack([cx, cy, cz + z0], axis=1)  # (n, 3) xyz
    start = (origin[:, None, :] + _START_OFFSETS)[crossed]  # (k, 3)
    end = (origin[:, None, :] + _END_OFFSETS)[crossed]

    v0 = volume[start[:, 2], start[:, 1], start[:, 0]].astype(np.float64)
    v1 = volume[end[:, 2], end[:, 1], end[:, 0]].astype(np.float64)
    vertices = _interpolate(start.astype(np.float64), end.astype(np.float64), v0, v1, isolevel)

    # One vertex per crossed edge per cube, in edge order within each cube
    vertex_ids = np.full(crossed.shape, -1, dtype=np.int64)
    vertex_ids[crossed] = np.arange(len(vertices))

    tri_edges = TRI_TABLE[cases, :3 * MAX_TRIANGLES_PER_CUBE]
    valid = tri_edges >= 0
    ids = np.take_along_axis(vertex_ids, np.where(valid, tri_edges, 0), axis=1)
    triangles = ids[valid].reshape(-1, 3)

    edge_index = np.nonzero(crossed)[1]
    start_flat = (start[:, 2] * height + start[:, 1]) * width + start[:, 0]
    edge_keys = start_flat * 3 + EDGE_AXIS[edge_index]

    mesh = Mesh(vertices=vertices.astype(np.float32), triangles=triangles.astype(np.uint32))
    return mesh, edge_keys


def _weld(mesh: Mesh, edge_keys: np.ndarray) -> Mesh:
    """
    Merge vertices emitted on the same lattice edge by neighbouring cubes.

    The first emission of each edge is kept and vertices stay in
    first-occurrence order. Triangles are only re-indexed.
    """
    _, first, inverse = np.unique(edge_keys, return_index=True, return_inverse=True)
    order = np.argsort(first, kind="stable")
    rank = np.empty_like(order)
    rank[order] = np.arange(len(order))
    remap = rank[inverse.reshape(-1)]

    return Mesh(
        vertices=mesh.vertices[first[order]],
        triangles=remap[mesh.triangles.astype(np.int64)].astype(np.uint32)
    )


def _check_isolevel(isolevel) -> float:
    try:
        level = float(isolevel)
    except (TypeError, ValueError):
        raise InvalidInput(f"isolevel must be a number, got {isolevel!r}")
    if not np.isfinite(level):
        raise InvalidInput(f"isolevel must be finite, got {level}")
    return level


def extract_surface(
    field: ScalarField,
    isolevel: float,
    sign: SignConvention = SignConvention.INSIDE_POSITIVE,
    deduplicate: bool = False,
    slab_depth: Optional[int] = None
) -> Mesh:
    """
    Extract the isosurface of a field at the given isolevel.

    Args:
        field: Validated scalar field
        isolevel: Surface threshold
        sign: Which side of the isolevel is solid; decides triangle winding
        deduplicate: Weld vertices shared between neighbouring cubes
        slab_depth: Cube layers per partition (None = whole grid at once)

    Returns:
        Mesh in field-local coordinates; empty if the field never crosses
        the isolevel.

    Raises:
        InvalidInput: on a non-finite isolevel or a bad slab depth.
    """
    level = _check_isolevel(isolevel)
    sign = SignConvention(sign)

    n_layers = field.depth - 1
    if slab_depth is None:
        slab_depth = max(n_layers, 1)
    elif (isinstance(slab_depth, bool) or not isinstance(slab_depth, (int, np.integer))
          or slab_depth < 1):
        raise InvalidInput(f"slab_depth must be a positive integer, got {slab_depth!r}")
    slab_depth = int(slab_depth)

    if field.n_cubes == 0:
        logger.info(f"Field {field.width}x{field.height}x{field.depth} has no cubes")
        return Mesh.empty()

    volume = field.volume
    pieces: List[Mesh] = []
    keys: List[np.ndarray] = []
    for z0 in range(0, n_layers, slab_depth):
        z1 = min(z0 + slab_depth, n_layers)
        piece, piece_keys = _extract_slab(volume, level, z0, z1)
        logger.debug(f"Slab z=[{z0}, {z1}): {piece.n_vertices} vertices, {piece.n_triangles} triangles")
        pieces.append(piece)
        keys.append(piece_keys)

    mesh = merge_meshes(pieces)

    if deduplicate and not mesh.is_empty:
        n_before = mesh.n_vertices
        mesh = _weld(mesh, np.concatenate(keys))
        logger.debug(f"Welded shared edges: {n_before} -> {mesh.n_vertices} vertices")

    if sign is SignConvention.INSIDE_NEGATIVE:
        mesh.triangles = np.ascontiguousarray(mesh.triangles[:, [0, 2, 1]])

    logger.info(f"Extracted surface with {mesh.n_vertices} vertices, {mesh.n_triangles} triangles "
                f"(isolevel={level}, {field.n_cubes} cubes)")
    return mesh


def extract(
    samples: Union[Sequence[float], np.ndarray],
    width: int,
    height: int,
    depth: int,
    isolevel: float,
    sign: SignConvention = SignConvention.INSIDE_POSITIVE,
    deduplicate: bool = False,
    slab_depth: Optional[int] = None
) -> Mesh:
    """
    Extract an isosurface from flat row-major samples.

    `samples[z * height * width + y * width + x]` is the value at lattice
    point (x, y, z).

    Raises:
        InvalidInput: if the sample count does not match the dimensions or
            the input is otherwise malformed.
    """
    field = ScalarField.from_samples(samples, width, height, depth)
    return extract_surface(
        field,
        isolevel,
        sign=sign,
        deduplicate=deduplicate,
        slab_depth=slab_depth
    )


class IsosurfaceExtractor:
    """
    Extracts isosurfaces from scalar fields using marching cubes.

    The workflow:
    1. Classify every cube's corners against the isolevel
    2. Interpolate crossings on the edges the case table marks
    3. Emit triangles in table order, slab by slab
    4. Merge slabs and optionally weld shared edge vertices
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize the extractor.

        Args:
            config: Extraction settings (isolevel, sign convention,
                deduplication, slab depth). Defaults to DEFAULT_CONFIG.
        """
        self.config = config or DEFAULT_CONFIG

    def extract(self, field: ScalarField, isolevel: Optional[float] = None) -> Mesh:
        """Extract the surface, using the configured isolevel unless one is given."""
        return extract_surface(
            field,
            self.config.isolevel if isolevel is None else isolevel,
            sign=self.config.sign,
            deduplicate=self.config.deduplicate_vertices,
            slab_depth=self.config.slab_depth
        )
