"""
Tests for volume loading and mesh export.
"""

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from isomesh.config import MeshMetadata
from isomesh.field import InvalidInput
from isomesh.generator import MarchingCubesGenerator
from isomesh.io import load_mesh, load_volume, save_mesh


class TestLoadVolume:

    def test_npy(self, tmp_path):
        volume = np.arange(24, dtype=np.float32).reshape(2, 3, 4)
        path = tmp_path / "density.npy"
        np.save(path, volume)

        field = load_volume(path)
        assert field.shape == (4, 3, 2)
        assert field.value(3, 2, 1) == 23.0

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "density.raw"
        path.write_bytes(b"\x00" * 8)
        with pytest.raises(InvalidInput, match="Unsupported"):
            load_volume(path)

    def test_non_finite_volume(self, tmp_path):
        path = tmp_path / "bad.npy"
        np.save(path, np.full((2, 2, 2), np.nan))
        with pytest.raises(InvalidInput):
            load_volume(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_volume(tmp_path / "missing.npy")


class TestMeshExport:

    def test_save_and_load_glb(self, tmp_path):
        mesh = MarchingCubesGenerator().generate_sphere(12, 4.2, scale=0.5)
        metadata = MeshMetadata(
            source="sphere",
            isolevel=0.0,
            scale=0.5,
            dimensions=(12, 12, 12),
            n_triangles=len(mesh.faces),
            n_vertices=len(mesh.vertices)
        )
        path = tmp_path / "meshes" / "sphere.glb"
        save_mesh(mesh, path, metadata)

        assert path.exists()
        assert path.with_suffix(".json").exists()

        loaded, loaded_meta = load_mesh(path)
        assert len(loaded.faces) == len(mesh.faces)
        assert loaded_meta == metadata

    def test_load_without_sidecar(self, tmp_path):
        mesh = MarchingCubesGenerator().generate_sphere(12, 4.2)
        path = tmp_path / "sphere.ply"
        mesh.export(str(path))

        loaded, metadata = load_mesh(path)
        assert metadata is None
        assert len(loaded.faces) == len(mesh.faces)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
