"""
Attractor-to-image pipeline.

Single entry point for batch tools, examples and other callers: generate
points from the attractor engine and render them to PNG files or data URLs.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from quatractor.core.engine import (
    DEFAULT_CONSTANTS,
    DEFAULT_RENDER_PARAMS,
    AttractorConstants,
    AttractorEngine,
    AttractorResult,
    Point,
    RenderParameters,
)
from quatractor.render.renderer import (
    DataURLRenderResult,
    ImageConfig,
    ImageRenderer,
    RenderResult,
)

logger = logging.getLogger(__name__)


class AttractorPipeline:
    """
    Complete constants-to-image processing pipeline.

    Owns one engine and one renderer; instances share nothing, so separate
    pipelines may run on separate threads.
    """

    def __init__(
        self,
        image_config: Optional[ImageConfig] = None,
        seed: Optional[int] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            image_config: Canvas, blur and colour settings.
            seed: Blur RNG seed for reproducible images.
        """
        self.image_config = image_config or ImageConfig()
        self.engine = AttractorEngine()
        self.renderer = ImageRenderer(self.image_config, seed=seed)

    def generate_batch(
        self,
        constants: AttractorConstants = DEFAULT_CONSTANTS,
        render_params: RenderParameters = DEFAULT_RENDER_PARAMS,
    ) -> AttractorResult:
        return self.engine.generate_batch(constants, render_params)

    def render_points_to_png(
        self,
        points: Sequence[Point],
        output_path: Union[str, Path],
    ) -> RenderResult:
        return self.renderer.render_points_to_png(points, output_path)

    def render_points_to_data_url(self, points: Sequence[Point]) -> DataURLRenderResult:
        return self.renderer.render_points_to_data_url(points)

    def generate_and_render(
        self,
        constants: AttractorConstants,
        render_params: RenderParameters,
        output_path: Union[str, Path],
    ) -> Dict[str, Any]:
        """
        Generate a batch and write it as a PNG.

        Returns:
            Dict with "batch" (AttractorResult) and "render" (RenderResult).
        """
        batch = self.generate_batch(constants, render_params)
        render = self.render_points_to_png(batch.points, output_path)
        logger.info(
            "Generated %d points in %.1fms, rendered in %.0fms",
            batch.iterations, batch.computation_time_ms, render.render_time_ms,
        )
        return {"batch": batch, "render": render}
