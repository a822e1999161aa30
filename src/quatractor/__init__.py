"""Quaternion attractor point clouds rendered to PNG."""

from quatractor.core.engine import (
    AttractorConstants,
    AttractorEngine,
    ProjectionType,
    RenderParameters,
    SideFlipMode,
    generate_batch,
)
from quatractor.core.quaternion import Quaternion, Vector3D
from quatractor.pipeline import AttractorPipeline
from quatractor.render.renderer import ImageConfig, ImageRenderer

__version__ = "0.1.0"
__all__ = [
    "AttractorConstants",
    "AttractorEngine",
    "AttractorPipeline",
    "ImageConfig",
    "ImageRenderer",
    "ProjectionType",
    "Quaternion",
    "RenderParameters",
    "SideFlipMode",
    "Vector3D",
    "generate_batch",
]
