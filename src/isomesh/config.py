"""
Configuration and constants for isosurface extraction.

Sign convention (pinned):
- INSIDE_POSITIVE (default): samples above the isolevel are solid, as in the
  sphere field `radius - distance`. Triangles wind so that
  (v1 - v0) x (v2 - v0) points out of the solid.
- INSIDE_NEGATIVE: samples below the isolevel are solid (signed distance
  fields). Winding is reversed so normals still point out of the solid.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple
import json
from pathlib import Path


class SignConvention(Enum):
    """Which side of the isolevel counts as solid."""
    INSIDE_POSITIVE = "inside_positive"
    INSIDE_NEGATIVE = "inside_negative"


@dataclass
class MeshMetadata:
    """
    Metadata written next to every exported mesh.
    """
    source: str  # sphere, terrain, volume or data
    isolevel: float
    scale: float
    dimensions: Tuple[int, int, int]  # (width, height, depth)
    n_triangles: int
    n_vertices: int
    sign_convention: str = SignConvention.INSIDE_POSITIVE.value
    deduplicated: bool = False
    generation_params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "isolevel": self.isolevel,
            "scale": self.scale,
            "dimensions": list(self.dimensions),
            "n_triangles": self.n_triangles,
            "n_vertices": self.n_vertices,
            "sign_convention": self.sign_convention,
            "deduplicated": self.deduplicated,
            "generation_params": self.generation_params
        }

    def save(self, path: Path) -> None:
        """Save metadata to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeshMetadata":
        data = dict(data)
        data["dimensions"] = tuple(data["dimensions"])
        return cls(**data)


@dataclass
class Config:
    """
    Global configuration for mesh generation.
    """

    # Surface threshold
    isolevel: float = 0.0

    # Uniform scale applied by the host adapter, never by the extractor
    scale: float = 1.0

    sign: SignConvention = SignConvention.INSIDE_POSITIVE

    # Weld vertices shared by neighbouring cubes
    deduplicate_vertices: bool = False

    # Cube layers per partition; None processes the grid in one pass
    slab_depth: Optional[int] = None

    output_dir: Path = field(default_factory=lambda: Path("outputs"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isolevel": self.isolevel,
            "scale": self.scale,
            "sign": self.sign.value,
            "deduplicate_vertices": self.deduplicate_vertices,
            "slab_depth": self.slab_depth,
            "output_dir": str(self.output_dir)
        }

    @classmethod
    def from_json(cls, path: Path) -> "Config":
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
        data["sign"] = SignConvention(data.get("sign", "inside_positive"))
        data["output_dir"] = Path(data.get("output_dir", "outputs"))
        return cls(**data)

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


# Global default config
DEFAULT_CONFIG = Config()
