"""
Tests for marching cubes isosurface extraction.

Tests cover:
- Single-cube cases against the lookup tables
- Empty and degenerate fields
- Sphere extraction accuracy and winding
- Determinism, slab partitioning and vertex welding
- Input validation
"""

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from isomesh.config import Config, SignConvention
from isomesh.field import ScalarField, InvalidInput
from isomesh.isosurface import (
    Mesh,
    IsosurfaceExtractor,
    extract,
    extract_surface,
    merge_meshes,
)
from isomesh.samplers import sphere_field
from isomesh.tables import CORNER_OFFSETS, EDGE_TABLE, TRI_TABLE


# ============== Fixtures ==============

SPHERE_SIZE = 16
SPHERE_RADIUS = 5.3  # keeps lattice points off the surface
SPHERE_CENTER = np.array([8.0, 8.0, 8.0])


@pytest.fixture
def sphere():
    return sphere_field(SPHERE_SIZE, SPHERE_RADIUS)


@pytest.fixture
def noisy_field():
    rng = np.random.default_rng(7)
    return ScalarField.from_volume(rng.normal(size=(9, 8, 7)))


def single_cube_samples(case: int) -> list:
    """2x2x2 samples whose corners below 0 are the set bits of `case`."""
    samples = [0.0] * 8
    for corner, (dx, dy, dz) in enumerate(CORNER_OFFSETS):
        below = (case >> corner) & 1
        samples[dz * 4 + dy * 2 + dx] = -1.0 if below else 1.0
    return samples


def face_normals(mesh: Mesh) -> np.ndarray:
    v = mesh.vertices.astype(np.float64)
    t = mesh.triangles.astype(np.int64)
    return np.cross(v[t[:, 1]] - v[t[:, 0]], v[t[:, 2]] - v[t[:, 0]])


# ============== Single Cube ==============

class TestSingleCube:
    """One cube, checked against the tables."""

    def test_corner_seven_below(self):
        """Only lattice point (1, 1, 1) below the isolevel."""
        mesh = extract([1, 1, 1, 1, 1, 1, 1, -1], 2, 2, 2, 0.0)

        assert mesh.n_vertices == 3
        assert mesh.n_triangles == 1

        expected = {(1.0, 0.5, 1.0), (0.5, 1.0, 1.0), (1.0, 1.0, 0.5)}
        assert {tuple(float(c) for c in v) for v in mesh.vertices} == expected

    def test_corner_seven_winding_faces_empty_corner(self):
        """Normal points from the solid towards the corner below the isolevel."""
        mesh = extract([1, 1, 1, 1, 1, 1, 1, -1], 2, 2, 2, 0.0)
        normal = face_normals(mesh)[0]
        np.testing.assert_allclose(normal / np.linalg.norm(normal), np.ones(3) / np.sqrt(3), atol=1e-6)

    def test_every_case_matches_tables(self):
        """One vertex per crossed edge and the table's triangle count."""
        for case in range(256):
            mesh = extract(single_cube_samples(case), 2, 2, 2, 0.0)
            n_edges = bin(int(EDGE_TABLE[case])).count("1")
            n_tris = int(np.count_nonzero(TRI_TABLE[case] >= 0)) // 3

            assert mesh.n_vertices == n_edges, f"case {case}"
            assert mesh.n_triangles == n_tris, f"case {case}"

    def test_every_case_vertices_at_midpoints(self):
        """With +/-1 corners and isolevel 0 each vertex is an edge midpoint."""
        for case in (1, 7, 24, 90, 105, 165, 254):
            mesh = extract(single_cube_samples(case), 2, 2, 2, 0.0)
            doubled = mesh.vertices * 2
            np.testing.assert_array_equal(doubled, np.round(doubled))
            # Exactly one coordinate sits halfway along its edge
            assert np.all(np.sum(doubled % 2 == 1, axis=1) == 1)

    def test_interpolation_weight(self):
        """Crossing sits where the linear interpolant equals the isolevel."""
        samples = [3.0, -1.0, 3.0, 3.0, 3.0, 3.0, 3.0, 3.0]
        mesh = extract(samples, 2, 2, 2, 0.0)

        # Edge from (0,0,0)=3 to (1,0,0)=-1 crosses at t = 0.75
        assert any(np.allclose(v, [0.75, 0.0, 0.0]) for v in mesh.vertices)

    def test_isolevel_shifts_surface(self):
        samples = [0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0]
        mesh = extract(samples, 2, 2, 2, 0.25)
        # Edge (0,0,0)=0 -> (1,0,0)=1 crosses at t = 0.25
        assert any(np.allclose(v, [0.25, 0.0, 0.0]) for v in mesh.vertices)


# ============== Empty Results ==============

class TestEmptyResults:
    """Fields that never cross the isolevel."""

    def test_all_above(self):
        mesh = extract([5.0] * 64, 4, 4, 4, 0.0)
        assert mesh.n_vertices == 0
        assert mesh.n_triangles == 0
        assert mesh.is_empty

    def test_all_below(self):
        mesh = extract([-5.0] * 64, 4, 4, 4, 0.0)
        assert mesh.is_empty

    def test_random_one_sided(self):
        rng = np.random.default_rng(3)
        above = rng.uniform(0.1, 10.0, size=5 * 6 * 7)
        assert extract(above, 5, 6, 7, 0.0).is_empty
        assert extract(-above, 5, 6, 7, 0.0).is_empty

    @pytest.mark.parametrize("dims", [(1, 4, 4), (4, 1, 4), (4, 4, 1), (1, 1, 1)])
    def test_degenerate_dimensions(self, dims):
        """Axes shorter than 2 contain no cubes; not an error."""
        n = dims[0] * dims[1] * dims[2]
        samples = np.where(np.arange(n) % 2 == 0, 1.0, -1.0)
        mesh = extract(samples, *dims, 0.0)
        assert mesh.is_empty

    def test_empty_mesh_shapes(self):
        mesh = extract([5.0] * 8, 2, 2, 2, 0.0)
        assert mesh.vertices.shape == (0, 3)
        assert mesh.triangles.shape == (0, 3)
        assert mesh.vertices.dtype == np.float32
        assert mesh.triangles.dtype == np.uint32


# ============== Sphere ==============

class TestSphere:
    """Sphere of radius R centred in an N^3 grid."""

    def test_vertices_near_sphere(self, sphere):
        mesh = extract_surface(sphere, 0.0)

        assert mesh.n_vertices > 0
        distance = np.linalg.norm(mesh.vertices - SPHERE_CENTER, axis=1)
        # Linear interpolation error is bounded by the cell size
        assert distance.max() <= SPHERE_RADIUS + 1.0
        assert distance.min() >= SPHERE_RADIUS - 1.0

    def test_triangles_valid(self, sphere):
        mesh = extract_surface(sphere, 0.0)
        t = mesh.triangles.astype(np.int64)

        assert t.max() < mesh.n_vertices
        assert np.all(t[:, 0] != t[:, 1])
        assert np.all(t[:, 1] != t[:, 2])
        assert np.all(t[:, 0] != t[:, 2])

    def test_faces_point_outward(self, sphere):
        mesh = extract_surface(sphere, 0.0)
        normals = face_normals(mesh)
        centroids = mesh.vertices[mesh.triangles.astype(np.int64)].mean(axis=1)
        outward = np.einsum("ij,ij->i", normals, centroids - SPHERE_CENTER)

        assert np.mean(outward > 0) > 0.95
        assert outward.sum() > 0

    def test_inside_negative_reverses_winding(self, sphere):
        positive = extract_surface(sphere, 0.0)
        negative = extract_surface(sphere, 0.0, sign=SignConvention.INSIDE_NEGATIVE)

        np.testing.assert_array_equal(negative.vertices, positive.vertices)
        np.testing.assert_array_equal(negative.triangles, positive.triangles[:, [0, 2, 1]])

    def test_inside_negative_field_faces_outward(self):
        """A signed-distance sphere (negative inside) still gets outward faces."""
        sdf = ScalarField.from_volume(-sphere_field(SPHERE_SIZE, SPHERE_RADIUS).volume)
        mesh = extract_surface(sdf, 0.0, sign=SignConvention.INSIDE_NEGATIVE)

        normals = face_normals(mesh)
        centroids = mesh.vertices[mesh.triangles.astype(np.int64)].mean(axis=1)
        outward = np.einsum("ij,ij->i", normals, centroids - SPHERE_CENTER)
        assert np.mean(outward > 0) > 0.95

    def test_matches_reference_area(self, sphere):
        """Surface area agrees with scikit-image's marching cubes."""
        measure = pytest.importorskip("skimage.measure")
        trimesh = pytest.importorskip("trimesh")

        ours = extract_surface(sphere, 0.0)
        verts, faces, _, _ = measure.marching_cubes(np.array(sphere.volume), level=0.0)

        area_ours = trimesh.Trimesh(ours.vertices, ours.triangles, process=False).area
        area_ref = trimesh.Trimesh(verts, faces, process=False).area
        assert abs(area_ours - area_ref) / area_ref < 0.03


# ============== Determinism & Partitioning ==============

class TestDeterminism:
    """Repeat runs and slab partitions give identical output."""

    def test_repeat_is_bit_identical(self, noisy_field):
        a = extract_surface(noisy_field, 0.1)
        b = extract_surface(noisy_field, 0.1)

        assert a.vertices.tobytes() == b.vertices.tobytes()
        assert a.triangles.tobytes() == b.triangles.tobytes()

    @pytest.mark.parametrize("slab_depth", [1, 3, 100])
    def test_slabs_match_single_pass(self, noisy_field, slab_depth):
        whole = extract_surface(noisy_field, 0.0)
        sliced = extract_surface(noisy_field, 0.0, slab_depth=slab_depth)

        np.testing.assert_array_equal(sliced.vertices, whole.vertices)
        np.testing.assert_array_equal(sliced.triangles, whole.triangles)

    def test_indices_valid_on_noise(self, noisy_field):
        mesh = extract_surface(noisy_field, 0.0)
        t = mesh.triangles.astype(np.int64)

        assert mesh.n_triangles > 0
        assert t.max() < mesh.n_vertices
        assert np.all((t[:, 0] != t[:, 1]) & (t[:, 1] != t[:, 2]) & (t[:, 0] != t[:, 2]))

    def test_every_vertex_is_referenced(self, noisy_field):
        mesh = extract_surface(noisy_field, 0.0)
        counts = np.bincount(mesh.triangles.astype(np.int64).ravel(), minlength=mesh.n_vertices)
        assert np.all(counts >= 1)


# ============== Vertex Welding ==============

class TestDeduplication:
    """Shared edge vertices welded across cubes."""

    def test_fewer_vertices_same_topology(self, sphere):
        naive = extract_surface(sphere, 0.0)
        welded = extract_surface(sphere, 0.0, deduplicate=True)

        assert welded.n_vertices < naive.n_vertices
        assert welded.n_triangles == naive.n_triangles

        # Same triangles, same corner positions
        np.testing.assert_array_equal(
            welded.vertices[welded.triangles.astype(np.int64)],
            naive.vertices[naive.triangles.astype(np.int64)]
        )

    def test_no_duplicate_positions(self, sphere):
        welded = extract_surface(sphere, 0.0, deduplicate=True)
        assert len(np.unique(welded.vertices, axis=0)) == welded.n_vertices

    def test_welding_across_slabs(self, sphere):
        whole = extract_surface(sphere, 0.0, deduplicate=True)
        sliced = extract_surface(sphere, 0.0, deduplicate=True, slab_depth=2)

        np.testing.assert_array_equal(sliced.vertices, whole.vertices)
        np.testing.assert_array_equal(sliced.triangles, whole.triangles)

    def test_welded_sphere_is_closed(self, sphere):
        """Every edge of a closed surface is shared by exactly two triangles."""
        welded = extract_surface(sphere, 0.0, deduplicate=True)
        t = welded.triangles.astype(np.int64)
        edges = np.sort(np.concatenate([t[:, [0, 1]], t[:, [1, 2]], t[:, [2, 0]]]), axis=1)
        _, counts = np.unique(edges, axis=0, return_counts=True)
        assert np.all(counts == 2)

    def test_single_cube_unchanged(self):
        samples = [1, 1, 1, 1, 1, 1, 1, -1]
        naive = extract(samples, 2, 2, 2, 0.0)
        welded = extract(samples, 2, 2, 2, 0.0, deduplicate=True)

        np.testing.assert_array_equal(welded.vertices, naive.vertices)
        np.testing.assert_array_equal(welded.triangles, naive.triangles)


# ============== Merge ==============

class TestMergeMeshes:
    """Partition-then-merge index offsets."""

    def test_offsets_indices(self):
        a = Mesh(vertices=np.zeros((3, 3), dtype=np.float32),
                 triangles=np.array([[0, 1, 2]], dtype=np.uint32))
        b = Mesh(vertices=np.ones((4, 3), dtype=np.float32),
                 triangles=np.array([[0, 1, 2], [1, 2, 3]], dtype=np.uint32))

        merged = merge_meshes([a, b])

        assert merged.n_vertices == 7
        np.testing.assert_array_equal(merged.triangles, [[0, 1, 2], [3, 4, 5], [4, 5, 6]])

    def test_empty_list(self):
        assert merge_meshes([]).is_empty

    def test_skips_empty_pieces(self):
        a = Mesh(vertices=np.zeros((3, 3), dtype=np.float32),
                 triangles=np.array([[0, 1, 2]], dtype=np.uint32))
        merged = merge_meshes([Mesh.empty(), a, Mesh.empty()])

        assert merged.n_vertices == 3
        np.testing.assert_array_equal(merged.triangles, [[0, 1, 2]])


# ============== Validation ==============

class TestValidation:
    """Invalid input fails loudly."""

    def test_sample_count_mismatch(self):
        with pytest.raises(InvalidInput):
            extract([0.0] * 10, 2, 2, 2, 0.0)

    def test_nan_sample(self):
        samples = [1.0] * 8
        samples[2] = float("nan")
        with pytest.raises(InvalidInput):
            extract(samples, 2, 2, 2, 0.0)

    @pytest.mark.parametrize("level", [float("nan"), float("inf"), "zero"])
    def test_bad_isolevel(self, level):
        with pytest.raises(InvalidInput):
            extract([1.0] * 8, 2, 2, 2, level)

    @pytest.mark.parametrize("slab_depth", [0, -2, 1.5, True])
    def test_bad_slab_depth(self, sphere, slab_depth):
        with pytest.raises(InvalidInput):
            extract_surface(sphere, 0.0, slab_depth=slab_depth)


# ============== Extractor Object ==============

class TestIsosurfaceExtractor:
    """Config-driven extractor."""

    def test_uses_config(self, sphere):
        config = Config(isolevel=1.0, deduplicate_vertices=True, slab_depth=4)
        mesh = IsosurfaceExtractor(config).extract(sphere)

        expected = extract_surface(sphere, 1.0, deduplicate=True)
        np.testing.assert_array_equal(mesh.vertices, expected.vertices)

        # isolevel 1 shrinks the sphere by one cell
        distance = np.linalg.norm(mesh.vertices - SPHERE_CENTER, axis=1)
        assert distance.max() <= SPHERE_RADIUS

    def test_isolevel_override(self, sphere):
        extractor = IsosurfaceExtractor(Config(isolevel=100.0))
        assert extractor.extract(sphere).is_empty
        assert not extractor.extract(sphere, isolevel=0.0).is_empty


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
