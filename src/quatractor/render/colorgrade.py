"""
Point colouring and tone normalisation.

Hue encodes the hemisphere side of each point (blue for +1, magenta for -1)
with a gentle index-driven wobble; accumulated energy is mapped to 8-bit
values through a log-domain z-score and a sigmoid.
"""

from typing import TYPE_CHECKING, Union

import numpy as np

if TYPE_CHECKING:
    from quatractor.render.renderer import Statistics

HUE_POSITIVE = 200.0
HUE_NEGATIVE = 320.0
HUE_WOBBLE_DEGREES = 10.0
HUE_WOBBLE_RATE = 0.1

# sigmoid(0) * 255, rounded; used when the log-domain spread is zero
MID_GRAY = 128.0


def side_hue(
    side: Union[int, np.ndarray],
    index: Union[int, np.ndarray],
) -> Union[float, np.ndarray]:
    """
    Hue in degrees for points on the given side at the given sequence index.

    Args:
        side: +1/-1 (scalar or array).
        index: Iteration index (scalar or array).
    """
    base = np.where(np.asarray(side) > 0, HUE_POSITIVE, HUE_NEGATIVE)
    hue = base + np.sin(np.asarray(index, dtype=np.float64) * HUE_WOBBLE_RATE) * HUE_WOBBLE_DEGREES
    if np.ndim(hue) == 0:
        return float(hue)
    return hue


def hsl_to_rgb_batch(
    h: np.ndarray,
    s: Union[float, np.ndarray],
    l: Union[float, np.ndarray],
) -> np.ndarray:
    """
    Vectorized HSL → RGB.

    Args:
        h: Hue in degrees, any real value (wrapped into [0, 360)).
        s: Saturation in [0, 1].
        l: Lightness in [0, 1].

    Returns:
        (..., 3) float64 array with channels in [0, 255].
    """
    h = np.asarray(h, dtype=np.float64)
    s = np.broadcast_to(np.asarray(s, dtype=np.float64), h.shape)
    l = np.broadcast_to(np.asarray(l, dtype=np.float64), h.shape)

    c = (1.0 - np.abs(2.0 * l - 1.0)) * s
    h6 = (h % 360.0) / 60.0
    x = c * (1.0 - np.abs(h6 % 2.0 - 1.0))
    m = l - c / 2.0
    idx = np.minimum(h6.astype(np.int32), 5)
    zero = np.zeros_like(c)

    rgb = np.zeros(h.shape + (3,), dtype=np.float64)
    for sector, r_src, g_src, b_src in [
        (0, c, x, zero),
        (1, x, c, zero),
        (2, zero, c, x),
        (3, zero, x, c),
        (4, x, zero, c),
        (5, c, zero, x),
    ]:
        mask = idx == sector
        if np.any(mask):
            rgb[mask, 0] = r_src[mask]
            rgb[mask, 1] = g_src[mask]
            rgb[mask, 2] = b_src[mask]

    return (rgb + m[..., np.newaxis]) * 255.0


def sigmoid(z: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    z = np.clip(z, -500.0, 500.0)
    return 1.0 / (1.0 + np.exp(-z))


def normalize_log_values(log_values: np.ndarray, stats: "Statistics") -> np.ndarray:
    """
    Map log-domain energy to [0, 255] with a shared z-score + sigmoid.

    The three channel means and stdevs are averaged into one centre and one
    spread, so all channels share a single curve and relative hue survives.
    A zero spread maps everything to MID_GRAY.

    Args:
        log_values: Array of log(energy + 1) values, last axis RGB.
        stats: Log-domain statistics of the energised pixels.

    Returns:
        float64 array, same shape as ``log_values``.
    """
    mean_avg = (stats.mean.r + stats.mean.g + stats.mean.b) / 3.0
    stdev_avg = (stats.stdev.r + stats.stdev.g + stats.stdev.b) / 3.0

    log_values = np.asarray(log_values, dtype=np.float64)
    if not np.isfinite(stdev_avg) or stdev_avg <= 0:
        return np.full(log_values.shape, MID_GRAY)

    z = (log_values - mean_avg) / stdev_avg
    return sigmoid(z) * 255.0


def normalize_min_max(values: np.ndarray, stats: "Statistics") -> np.ndarray:
    """
    Legacy per-channel stretch: (v - min) / (max - min) * 255.

    Operates on whatever domain ``stats`` was computed in. Channels with no
    range produce 0. Unstable across point counts; kept for comparison.
    """
    values = np.asarray(values, dtype=np.float64)
    lo = np.array([stats.min.r, stats.min.g, stats.min.b])
    hi = np.array([stats.max.r, stats.max.g, stats.max.b])
    span = hi - lo

    out = np.zeros_like(values)
    ok = span > 0
    if np.any(ok):
        out[..., ok] = (values[..., ok] - lo[ok]) / span[ok] * 255.0
    return np.clip(out, 0.0, 255.0)
