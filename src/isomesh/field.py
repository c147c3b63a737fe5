"""
Scalar field container.

Samples are stored row-major with x fastest:
    index = z * height * width + y * width + x
and exposed as a read-only volume indexed [z, y, x].
"""

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)


class InvalidInput(ValueError):
    """Raised when field data or extraction parameters are malformed."""


def _as_dimension(value, name: str) -> int:
    try:
        dim = int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{name} must be an integer, got {value!r}")
    if dim != value or dim < 1:
        raise InvalidInput(f"{name} must be a positive integer, got {value!r}")
    return dim


@dataclass(frozen=True, eq=False)
class ScalarField:
    """
    Immutable width x height x depth grid of float32 samples.

    Fields smaller than 2 along any axis are valid but contain no cubes.
    """
    volume: np.ndarray  # (depth, height, width) float32, read-only

    @classmethod
    def from_samples(
        cls,
        samples: Union[Sequence[float], np.ndarray],
        width: int,
        height: int,
        depth: int
    ) -> "ScalarField":
        """
        Build a field from a flat row-major sample sequence.

        Raises:
            InvalidInput: on bad dimensions, a sample count mismatch or
                non-finite samples.
        """
        width = _as_dimension(width, "width")
        height = _as_dimension(height, "height")
        depth = _as_dimension(depth, "depth")

        try:
            flat = np.array(samples, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise InvalidInput(f"Samples are not numeric: {e}")

        if flat.ndim != 1:
            raise InvalidInput(f"Samples must be a flat sequence, got shape {flat.shape}")

        expected = width * height * depth
        if flat.size != expected:
            raise InvalidInput(
                f"Data array size doesn't match dimensions: "
                f"{flat.size} samples for {width}x{height}x{depth} (expected {expected})"
            )

        return cls._seal(flat.reshape(depth, height, width))

    @classmethod
    def from_volume(cls, volume: np.ndarray) -> "ScalarField":
        """Build a field from a 3D array shaped (depth, height, width)."""
        try:
            data = np.array(volume, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise InvalidInput(f"Volume is not numeric: {e}")

        if data.ndim != 3:
            raise InvalidInput(f"Volume must be 3D (depth, height, width), got shape {data.shape}")
        if min(data.shape) < 1:
            raise InvalidInput(f"Volume has an empty axis: {data.shape}")

        return cls._seal(data)

    @classmethod
    def _seal(cls, data: np.ndarray) -> "ScalarField":
        # Non-finite samples have no defined crossing, reject them up front
        if not np.all(np.isfinite(data)):
            n_bad = int(np.count_nonzero(~np.isfinite(data)))
            raise InvalidInput(f"Field contains {n_bad} non-finite samples (NaN or Inf)")
        data = np.ascontiguousarray(data)
        data.setflags(write=False)
        logger.debug(f"Scalar field {data.shape[2]}x{data.shape[1]}x{data.shape[0]}, "
                     f"range=[{data.min():.3f}, {data.max():.3f}]")
        return cls(volume=data)

    @property
    def width(self) -> int:
        return self.volume.shape[2]

    @property
    def height(self) -> int:
        return self.volume.shape[1]

    @property
    def depth(self) -> int:
        return self.volume.shape[0]

    @property
    def shape(self) -> Tuple[int, int, int]:
        """(width, height, depth)."""
        return self.width, self.height, self.depth

    @property
    def n_samples(self) -> int:
        return self.volume.size

    @property
    def n_cubes(self) -> int:
        return (
            max(self.width - 1, 0)
            * max(self.height - 1, 0)
            * max(self.depth - 1, 0)
        )

    @property
    def samples(self) -> np.ndarray:
        """Flat row-major view of the samples."""
        return self.volume.reshape(-1)

    def index(self, x: int, y: int, z: int) -> int:
        """Row-major flat index of lattice point (x, y, z)."""
        return z * self.height * self.width + y * self.width + x

    def value(self, x: int, y: int, z: int) -> float:
        return float(self.volume[z, y, x])

    def value_range(self) -> Tuple[float, float]:
        return float(self.volume.min()), float(self.volume.max())

    def straddles(self, isolevel: float) -> bool:
        """Whether samples lie on both sides of the isolevel."""
        lo, hi = self.value_range()
        return lo < isolevel <= hi
