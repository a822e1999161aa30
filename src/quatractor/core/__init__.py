"""Quaternion math and the attractor iteration."""

from quatractor.core.engine import (
    AttractorConstants,
    AttractorEngine,
    AttractorResult,
    EngineState,
    Point,
    ProjectionType,
    RenderParameters,
    SideFlipMode,
    generate_batch,
)
from quatractor.core.quaternion import Quaternion, Vector3D
