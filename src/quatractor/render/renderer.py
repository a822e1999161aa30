"""
Point-cloud image renderer.

Turns a sequence of attractor points into an 8-bit RGB image:

1. Aggregate coloured points into a float RGB energy grid.
2. Stochastic disc blur (heavy-tailed, centre-weighted).
3. Log-domain statistics over energised pixels.
4. Shared z-score + sigmoid normalisation to 0-255.
5. PNG encoding (file, async file, base64 data URL or PIL image).

Every render call owns a fresh grid; only the blur consumes randomness.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image

from quatractor.core.engine import Point
from quatractor.io.png import encode_data_url, encode_png, write_png, write_png_async
from quatractor.render.colorgrade import (
    hsl_to_rgb_batch,
    normalize_log_values,
    normalize_min_max,
    side_hue,
)

logger = logging.getLogger(__name__)

NORMALIZATION_MODES = ("logarithmic", "statistics")

# Disc samples at or beyond this radius are rejected; atanh diverges at 1
DISC_REJECT_RADIUS = 0.99


@dataclass
class ImageConfig:
    """Canvas geometry, blur and colouring for a render."""
    width: int = 800
    height: int = 600
    scale: float = 100.0     # pixels per world unit
    offset_x: float = 400.0  # pixel column of world x = 0
    offset_y: float = 300.0  # pixel row of world y = 0

    blur_radius: float = 2.0  # 0 disables the blur
    blur_samples: int = 16    # disc samples per pixel

    normalization_mode: str = "logarithmic"  # "logarithmic" | "statistics"

    # Point colour (hue comes from the hemisphere side)
    saturation: float = 0.7
    lightness: float = 0.5

    seed: Optional[int] = None  # blur RNG seed; None = fresh entropy

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image size must be positive, got {self.width}x{self.height}")
        if self.normalization_mode not in NORMALIZATION_MODES:
            raise ValueError(
                f"Unknown normalization mode {self.normalization_mode!r}; "
                f"expected one of {NORMALIZATION_MODES}"
            )
        if self.blur_samples < 1:
            raise ValueError("blur_samples must be at least 1")

    @classmethod
    def centered(cls, width: int, height: int, scale: float = 100.0, **kwargs) -> "ImageConfig":
        """Config with the world origin at the canvas centre."""
        return cls(
            width=width,
            height=height,
            scale=scale,
            offset_x=width / 2,
            offset_y=height / 2,
            **kwargs,
        )


# ---------------------------------------------------------------------------
# Grid & statistics
# ---------------------------------------------------------------------------

@dataclass
class PixelAccumulator:
    """Per-pixel RGB energy with its precomputed log(value + 1)."""
    energy: np.ndarray  # (H, W, 3) float64
    log: np.ndarray     # (H, W, 3) float64

    @classmethod
    def zeros(cls, width: int, height: int) -> "PixelAccumulator":
        return cls(
            energy=np.zeros((height, width, 3), dtype=np.float64),
            log=np.zeros((height, width, 3), dtype=np.float64),
        )

    @classmethod
    def from_energy(cls, energy: np.ndarray) -> "PixelAccumulator":
        energy = np.asarray(energy, dtype=np.float64)
        return cls(energy=energy, log=np.log1p(energy))

    @property
    def energised(self) -> np.ndarray:
        """(H, W) bool mask of pixels with any nonzero energy."""
        return np.any(self.energy != 0, axis=2)


class ChannelStats(NamedTuple):
    r: float
    g: float
    b: float


_ZERO = ChannelStats(0.0, 0.0, 0.0)


@dataclass
class Statistics:
    """Per-channel log-domain statistics over energised pixels."""
    min: ChannelStats = _ZERO
    max: ChannelStats = _ZERO
    mean: ChannelStats = _ZERO
    stdev: ChannelStats = _ZERO
    pixel_count: int = 0

    @classmethod
    def empty(cls) -> "Statistics":
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min": self.min._asdict(),
            "max": self.max._asdict(),
            "mean": self.mean._asdict(),
            "stdev": self.stdev._asdict(),
            "pixel_count": self.pixel_count,
        }


@dataclass
class RenderResult:
    image_path: Path
    statistics: Statistics
    point_count: int
    render_time_ms: float


@dataclass
class DataURLRenderResult:
    image_data_url: str
    statistics: Statistics
    point_count: int
    render_time_ms: float


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def aggregate_points(points: Sequence[Point], config: ImageConfig) -> PixelAccumulator:
    """
    Splat coloured points into a fresh energy grid.

    Each point lands on the nearest pixel; colour energy adds up with density.
    Points outside the canvas (or non-finite) are dropped without error.
    """
    acc = PixelAccumulator.zeros(config.width, config.height)
    n = len(points)
    if n == 0:
        return acc

    xs = np.fromiter((p.x for p in points), dtype=np.float64, count=n)
    ys = np.fromiter((p.y for p in points), dtype=np.float64, count=n)
    sides = np.fromiter((p.side for p in points), dtype=np.int64, count=n)
    indices = np.fromiter((p.index for p in points), dtype=np.int64, count=n)

    with np.errstate(invalid="ignore"):
        gx = _round_half_up(xs * config.scale + config.offset_x)
        gy = _round_half_up(ys * config.scale + config.offset_y)

    valid = (
        np.isfinite(gx) & np.isfinite(gy)
        & (gx >= 0) & (gx < config.width)
        & (gy >= 0) & (gy < config.height)
    )
    if not np.any(valid):
        return acc

    colors = hsl_to_rgb_batch(
        side_hue(sides[valid], indices[valid]),
        config.saturation,
        config.lightness,
    )
    np.add.at(
        acc.energy,
        (gy[valid].astype(np.int64), gx[valid].astype(np.int64)),
        colors,
    )
    return acc


def _disc_offsets(
    rng: np.random.Generator,
    n: int,
    blur_radius: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Draw ``n`` pixel offsets from the atanh-remapped unit disc.

    Uniform samples in [-1, 1]² are rejection-sampled into the disc, then the
    radius r is replaced by atanh(r) * blur_radius along the same direction.
    """
    u = np.empty(n, dtype=np.float64)
    v = np.empty(n, dtype=np.float64)
    pending = np.arange(n)
    while pending.size:
        cu = rng.uniform(-1.0, 1.0, pending.size)
        cv = rng.uniform(-1.0, 1.0, pending.size)
        ok = np.hypot(cu, cv) < DISC_REJECT_RADIUS
        u[pending[ok]] = cu[ok]
        v[pending[ok]] = cv[ok]
        pending = pending[~ok]

    r = np.hypot(u, v)
    factor = np.zeros_like(r)
    nz = r > 0
    factor[nz] = np.arctanh(r[nz]) * blur_radius / r[nz]
    return u * factor, v * factor


def apply_blur(
    acc: PixelAccumulator,
    config: ImageConfig,
    rng: Optional[np.random.Generator] = None,
) -> PixelAccumulator:
    """
    Stochastic disc blur into a fresh grid.

    Every pixel averages the energy of ``blur_samples`` randomly offset source
    pixels; samples falling outside the canvas are ignored. With
    ``blur_radius <= 0`` the energy is passed through unchanged. Logs are
    recomputed in both cases.
    """
    if config.blur_radius <= 0:
        return PixelAccumulator.from_energy(acc.energy.copy())

    rng = rng if rng is not None else np.random.default_rng(config.seed)
    H, W = config.height, config.width
    ys, xs = np.indices((H, W))
    ys = ys.ravel()
    xs = xs.ravel()
    n = H * W

    total = np.zeros((n, 3), dtype=np.float64)
    counts = np.zeros(n, dtype=np.int64)

    for _ in range(config.blur_samples):
        dx, dy = _disc_offsets(rng, n, config.blur_radius)
        sx = xs + _round_half_up(dx).astype(np.int64)
        sy = ys + _round_half_up(dy).astype(np.int64)
        valid = (sx >= 0) & (sx < W) & (sy >= 0) & (sy < H)
        total[valid] += acc.energy[sy[valid], sx[valid]]
        counts[valid] += 1

    blurred = np.zeros_like(total)
    has = counts > 0
    blurred[has] = total[has] / counts[has, np.newaxis]
    return PixelAccumulator.from_energy(blurred.reshape(H, W, 3))


def calculate_statistics(acc: PixelAccumulator) -> Statistics:
    """
    Min, max, mean and population stdev of log(energy + 1) per channel.

    Only pixels with nonzero energy take part. No energised pixels gives
    all-zero statistics.
    """
    values = acc.log[acc.energised]
    count = values.shape[0]
    if count == 0:
        return Statistics.empty()

    # first pass: extrema & mean
    lo = values.min(axis=0)
    hi = values.max(axis=0)
    mean = values.sum(axis=0) / count

    # second pass: spread around the mean
    stdev = np.sqrt(((values - mean) ** 2).sum(axis=0) / count)

    return Statistics(
        min=ChannelStats(*map(float, lo)),
        max=ChannelStats(*map(float, hi)),
        mean=ChannelStats(*map(float, mean)),
        stdev=ChannelStats(*map(float, stdev)),
        pixel_count=int(count),
    )


def to_rgb_array(
    acc: PixelAccumulator,
    stats: Statistics,
    normalization_mode: str = "logarithmic",
) -> np.ndarray:
    """
    Quantise the accumulator to an (H, W, 3) uint8 image.

    Pixels without energy stay black.
    """
    out = np.zeros(acc.energy.shape, dtype=np.uint8)
    mask = acc.energised
    if not np.any(mask):
        return out

    if normalization_mode == "statistics":
        values = normalize_min_max(acc.log[mask], stats)
    else:
        values = normalize_log_values(acc.log[mask], stats)

    out[mask] = np.clip(_round_half_up(values), 0, 255).astype(np.uint8)
    return out


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------

class ImageRenderer:
    """
    Renders attractor point batches to PNG.

    The blur RNG is owned per instance; pass ``seed`` (or ``config.seed``)
    for reproducible images.
    """

    def __init__(self, config: Optional[ImageConfig] = None, seed: Optional[int] = None):
        self.cfg = config or ImageConfig()
        self.rng = np.random.default_rng(seed if seed is not None else self.cfg.seed)

    def render_to_array(self, points: Sequence[Point]) -> Tuple[np.ndarray, Statistics]:
        """Run aggregate → blur → statistics → normalise; return pixels and stats."""
        acc = aggregate_points(points, self.cfg)
        acc = apply_blur(acc, self.cfg, self.rng)
        stats = calculate_statistics(acc)
        logger.debug("Statistics: %s", stats.to_dict())
        return to_rgb_array(acc, stats, self.cfg.normalization_mode), stats

    def render_to_png_bytes(self, points: Sequence[Point]) -> Tuple[bytes, Statistics]:
        rgb, stats = self.render_to_array(points)
        return encode_png(rgb, self.cfg.width, self.cfg.height), stats

    def render_points_to_png(
        self,
        points: Sequence[Point],
        output_path: Union[str, Path],
    ) -> RenderResult:
        """
        Render and write a PNG file (parent directories are created).

        Raises:
            OSError: If the file cannot be written.
        """
        t0 = time.perf_counter()
        png, stats = self.render_to_png_bytes(points)
        path = write_png(output_path, png)
        return self._file_result(path, stats, len(points), t0)

    async def render_points_to_png_async(
        self,
        points: Sequence[Point],
        output_path: Union[str, Path],
    ) -> RenderResult:
        """As ``render_points_to_png`` but the file write does not block the loop."""
        t0 = time.perf_counter()
        png, stats = self.render_to_png_bytes(points)
        path = await write_png_async(output_path, png)
        return self._file_result(path, stats, len(points), t0)

    def render_points_to_data_url(self, points: Sequence[Point]) -> DataURLRenderResult:
        """Render to a ``data:image/png;base64,...`` URL."""
        t0 = time.perf_counter()
        png, stats = self.render_to_png_bytes(points)
        url = encode_data_url(png)
        elapsed = (time.perf_counter() - t0) * 1000.0
        logger.info(
            "Rendered %d points to data URL (%dx%d) in %.0fms",
            len(points), self.cfg.width, self.cfg.height, elapsed,
        )
        return DataURLRenderResult(url, stats, len(points), elapsed)

    def render_points_to_image(self, points: Sequence[Point]) -> Image.Image:
        """Render to an in-memory PIL image."""
        rgb, _ = self.render_to_array(points)
        return Image.fromarray(rgb)

    def render_animation_frames(
        self,
        batches: Sequence[Sequence[Point]],
        output_dir: Union[str, Path],
        base_name: str = "frame",
        progress_callback: callable = None,
    ) -> List[RenderResult]:
        """
        Write one PNG per batch as ``<base_name>_000.png``, ``_001``, ...

        Args:
            batches: Point batches, one per frame.
            output_dir: Target directory (created if missing).
            base_name: File name prefix.
            progress_callback: Optional callback(current, total).
        """
        output_dir = Path(output_dir)
        total = len(batches)
        results = []
        for i, batch in enumerate(batches):
            path = output_dir / f"{base_name}_{i:03d}.png"
            results.append(self.render_points_to_png(batch, path))
            if progress_callback:
                progress_callback(i + 1, total)
        return results

    def _file_result(
        self,
        path: Path,
        stats: Statistics,
        point_count: int,
        t0: float,
    ) -> RenderResult:
        elapsed = (time.perf_counter() - t0) * 1000.0
        logger.info(
            "Rendered %d points to %s (%dx%d) in %.0fms",
            point_count, path, self.cfg.width, self.cfg.height, elapsed,
        )
        return RenderResult(path, stats, point_count, elapsed)
