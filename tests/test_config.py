"""
Tests for configuration and mesh metadata.
"""

import pytest
import json
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from isomesh.config import Config, MeshMetadata, SignConvention, DEFAULT_CONFIG


class TestConfig:

    def test_defaults(self):
        config = Config()
        assert config.isolevel == 0.0
        assert config.scale == 1.0
        assert config.sign is SignConvention.INSIDE_POSITIVE
        assert config.deduplicate_vertices is False
        assert config.slab_depth is None
        assert config.output_dir == Path("outputs")

    def test_default_config(self):
        assert DEFAULT_CONFIG == Config()

    def test_save_and_load(self, tmp_path):
        config = Config(
            isolevel=0.5,
            scale=0.25,
            sign=SignConvention.INSIDE_NEGATIVE,
            deduplicate_vertices=True,
            slab_depth=8,
            output_dir=tmp_path / "out"
        )
        path = tmp_path / "nested" / "config.json"
        config.save(path)

        assert Config.from_json(path) == config

    def test_partial_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"isolevel": 2.0}))

        config = Config.from_json(path)
        assert config.isolevel == 2.0
        assert config.sign is SignConvention.INSIDE_POSITIVE
        assert config.output_dir == Path("outputs")

    def test_unknown_sign_rejected(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"sign": "sideways"}))
        with pytest.raises(ValueError):
            Config.from_json(path)

    def test_to_dict_is_json(self):
        data = Config(sign=SignConvention.INSIDE_NEGATIVE).to_dict()
        assert json.loads(json.dumps(data))["sign"] == "inside_negative"


class TestMeshMetadata:

    def test_round_trip(self, tmp_path):
        metadata = MeshMetadata(
            source="sphere",
            isolevel=0.0,
            scale=0.1,
            dimensions=(16, 16, 16),
            n_triangles=100,
            n_vertices=300,
            generation_params={"size": 16, "radius": 5.3}
        )
        path = tmp_path / "mesh.json"
        metadata.save(path)

        with open(path) as f:
            loaded = MeshMetadata.from_dict(json.load(f))

        assert loaded == metadata
        assert loaded.dimensions == (16, 16, 16)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
