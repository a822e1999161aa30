"""Tests for the AttractorPipeline module."""

import base64

import numpy as np
from PIL import Image

from quatractor import AttractorPipeline
from quatractor.core.engine import AttractorResult, RenderParameters
from quatractor.io.png import PNG_SIGNATURE
from quatractor.render.renderer import RenderResult


class TestAttractorPipeline:
    """Tests for the complete pipeline."""

    def test_generate_batch(self, canvas_config, reference_constants, reference_params):
        """generate_batch() should return an AttractorResult."""
        pipeline = AttractorPipeline(canvas_config)
        result = pipeline.generate_batch(reference_constants, reference_params)

        assert isinstance(result, AttractorResult)
        assert len(result.points) == 500

    def test_end_to_end_png(self, canvas_config, reference_constants, reference_params, tmp_path):
        """500 points at 400x300 should give a decodable, non-empty PNG."""
        pipeline = AttractorPipeline(canvas_config)
        batch = pipeline.generate_batch(reference_constants, reference_params)
        result = pipeline.render_points_to_png(batch.points, tmp_path / "attractor.png")

        assert isinstance(result, RenderResult)
        assert result.point_count == 500
        with Image.open(result.image_path) as img:
            assert img.size == (400, 300)
            pixels = np.asarray(img)
        assert pixels.max() > 0

    def test_generate_and_render(self, canvas_config, reference_constants, reference_params, tmp_path):
        """generate_and_render() should return both stage results."""
        pipeline = AttractorPipeline(canvas_config)
        output_path = tmp_path / "out" / "attractor.png"

        result = pipeline.generate_and_render(reference_constants, reference_params, output_path)

        assert set(result) == {"batch", "render"}
        assert result["render"].image_path == output_path
        assert output_path.read_bytes()[:8] == PNG_SIGNATURE
        assert result["render"].point_count == result["batch"].iterations

    def test_data_url(self, small_config, reference_constants):
        """render_points_to_data_url() should wrap a valid PNG."""
        pipeline = AttractorPipeline(small_config)
        batch = pipeline.generate_batch(reference_constants, RenderParameters(batch_size=200))
        result = pipeline.render_points_to_data_url(batch.points)

        payload = result.image_data_url.split(",", 1)[1]
        assert base64.b64decode(payload)[:8] == PNG_SIGNATURE

    def test_seeded_pipelines_match(self, small_config, reference_constants, tmp_path):
        """Same seed and constants should write identical files."""
        params = RenderParameters(batch_size=300)
        paths = []
        for name in ("a.png", "b.png"):
            pipeline = AttractorPipeline(small_config, seed=99)
            paths.append(pipeline.generate_and_render(reference_constants, params, tmp_path / name)["render"].image_path)

        assert paths[0].read_bytes() == paths[1].read_bytes()
