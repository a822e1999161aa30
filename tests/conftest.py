"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from quatractor.core.engine import (
    AttractorConstants,
    Point,
    RenderParameters,
    SideFlipMode,
)
from quatractor.core.quaternion import Quaternion, Vector3D, normalize
from quatractor.render.renderer import ImageConfig


@pytest.fixture
def reference_constants() -> AttractorConstants:
    """
    The reference attractor used across the suite.

    Returns:
        Constants with a slightly off-identity wind and a small diagonal push.
    """
    return AttractorConstants(
        start=normalize(Quaternion(0.6, 0.4, 0.3, 0.2)),
        wind=normalize(Quaternion(0.95, 0.05, 0.0, 0.0)),
        additive=Vector3D(0.08, 0.08, 0.08),
        mode=SideFlipMode.PLAIN_FLIP,
    )


@pytest.fixture
def reference_params() -> RenderParameters:
    return RenderParameters(batch_size=500)


@pytest.fixture
def small_config() -> ImageConfig:
    """40x30 canvas centred on the origin, seeded blur."""
    return ImageConfig.centered(40, 30, scale=10.0, seed=7)


@pytest.fixture
def canvas_config() -> ImageConfig:
    """400x300 canvas centred on the origin at 100 px per unit."""
    return ImageConfig.centered(400, 300, scale=100.0, seed=1234)


@pytest.fixture
def random_points() -> list:
    """A reproducible scatter of 2000 points in [-1.5, 1.5]²."""
    rng = np.random.default_rng(42)
    xy = rng.uniform(-1.5, 1.5, (2000, 2))
    sides = rng.choice([-1, 1], 2000)
    return [
        Point(float(x), float(y), 0.0, int(s), i)
        for i, ((x, y), s) in enumerate(zip(xy, sides))
    ]
