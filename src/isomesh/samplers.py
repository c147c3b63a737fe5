"""
Demonstration field samplers.

Both produce samples where positive values are solid, matching the default
INSIDE_POSITIVE sign convention.
"""

import logging

import numpy as np

from .field import ScalarField, InvalidInput

logger = logging.getLogger(__name__)


def _lattice(width: int, height: int, depth: int):
    """Lattice coordinate arrays shaped (depth, height, width)."""
    for name, value in (("width", width), ("height", height), ("depth", depth)):
        if int(value) != value or value < 1:
            raise InvalidInput(f"{name} must be a positive integer, got {value!r}")
    z, y, x = np.meshgrid(
        np.arange(depth, dtype=np.float32),
        np.arange(height, dtype=np.float32),
        np.arange(width, dtype=np.float32),
        indexing="ij"
    )
    return x, y, z


def sphere_field(size: int, radius: float) -> ScalarField:
    """
    Sphere of `radius` centred at size / 2 in a size^3 grid.

    Sample value is radius - distance to the centre.
    """
    x, y, z = _lattice(size, size, size)
    center = np.float32(size / 2.0)
    distance = np.sqrt((x - center) ** 2 + (y - center) ** 2 + (z - center) ** 2)
    logger.info(f"Sampling sphere field: {size}^3, radius={radius}")
    return ScalarField.from_volume(np.float32(radius) - distance)


def terrain_field(
    width: int,
    height: int,
    depth: int,
    noise_scale: float = 1.0,
    height_scale: float = 1.0
) -> ScalarField:
    """
    Height-function terrain: solid below (sin(nx * 0.1) + cos(nz * 0.1)) * height_scale.

    nx = x * noise_scale and nz = z * noise_scale; y is the vertical axis.
    """
    x, y, z = _lattice(width, height, depth)
    nx = x * np.float32(noise_scale)
    nz = z * np.float32(noise_scale)
    terrain_height = (np.sin(nx * 0.1) + np.cos(nz * 0.1)) * np.float32(height_scale)
    logger.info(f"Sampling terrain field: {width}x{height}x{depth}, "
                f"noise_scale={noise_scale}, height_scale={height_scale}")
    return ScalarField.from_volume(terrain_height - y)
