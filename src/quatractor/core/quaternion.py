"""
Quaternion algebra and stereographic projection.

Scalar-first convention: q = w + x*i + y*j + z*k. Projection center is the
north pole (1, 0, 0, 0) of the unit 4-sphere; the stereographic map is
two-to-one across hemispheres once the scalar sign is forgotten, so the
inverse comes in a plain flavour and a side-aware flavour.
"""

import math
from typing import NamedTuple, Sequence

# Below this distance from the projection pole the forward map returns the origin
POLE_EPSILON = 1e-10


class Quaternion(NamedTuple):
    w: float
    x: float
    y: float
    z: float


class Vector3D(NamedTuple):
    x: float
    y: float
    z: float


IDENTITY = Quaternion(1.0, 0.0, 0.0, 0.0)
ORIGIN = Vector3D(0.0, 0.0, 0.0)


def magnitude(q: Quaternion) -> float:
    """Euclidean 4-norm."""
    return math.sqrt(q.w * q.w + q.x * q.x + q.y * q.y + q.z * q.z)


def normalize(q: Quaternion) -> Quaternion:
    """
    Scale a quaternion onto the unit 4-sphere.

    A zero-norm input maps to the identity rather than dividing by zero.
    """
    length = magnitude(q)
    if length == 0:
        return IDENTITY
    return Quaternion(q.w / length, q.x / length, q.y / length, q.z / length)


def multiply(q1: Quaternion, q2: Quaternion) -> Quaternion:
    """Hamilton product q1 * q2."""
    return Quaternion(
        q1.w * q2.w - q1.x * q2.x - q1.y * q2.y - q1.z * q2.z,
        q1.w * q2.x + q1.x * q2.w + q1.y * q2.z - q1.z * q2.y,
        q1.w * q2.y - q1.x * q2.z + q1.y * q2.w + q1.z * q2.x,
        q1.w * q2.z + q1.x * q2.y - q1.y * q2.x + q1.z * q2.w,
    )


def conjugate(q: Quaternion) -> Quaternion:
    return Quaternion(q.w, -q.x, -q.y, -q.z)


def inverse(q: Quaternion) -> Quaternion:
    """Multiplicative inverse; zero-norm input falls back to identity."""
    norm2 = q.w * q.w + q.x * q.x + q.y * q.y + q.z * q.z
    if norm2 == 0:
        return IDENTITY
    c = conjugate(q)
    return Quaternion(c.w / norm2, c.x / norm2, c.y / norm2, c.z / norm2)


def from_axis_angle(axis: Sequence[float], angle: float) -> Quaternion:
    """
    Unit rotation quaternion of ``angle`` radians about ``axis``.

    A zero axis yields the identity.
    """
    ax, ay, az = (float(c) for c in axis)
    length = math.sqrt(ax * ax + ay * ay + az * az)
    if length == 0:
        return IDENTITY
    half = angle * 0.5
    s = math.sin(half) / length
    return Quaternion(math.cos(half), ax * s, ay * s, az * s)


def side_of(q: Quaternion) -> int:
    """Hemisphere side of a quaternion: +1 for w >= 0, else -1."""
    return 1 if q.w >= 0 else -1


# ---------------------------------------------------------------------------
# Stereographic projection
# ---------------------------------------------------------------------------

def stereographic_projection(q: Quaternion) -> Vector3D:
    """
    Project a point of S³ onto R³ from the pole (1, 0, 0, 0).

    Within POLE_EPSILON of the pole the origin is returned. This is a fixed
    policy for the singular point, not the limit of the map (which diverges).
    """
    denom = 1.0 - q.w
    if abs(denom) < POLE_EPSILON:
        return ORIGIN
    scale = 1.0 / denom
    return Vector3D(q.x * scale, q.y * scale, q.z * scale)


def inverse_stereographic_projection(p: Vector3D) -> Quaternion:
    """Lift a point of R³ back onto S³ (inverse of ``stereographic_projection``)."""
    r2 = p.x * p.x + p.y * p.y + p.z * p.z
    w = (r2 - 1.0) / (r2 + 1.0)
    scale = 2.0 / (r2 + 1.0)
    return Quaternion(w, p.x * scale, p.y * scale, p.z * scale)


def inverse_stereographic_projection_with_side(p: Vector3D, side: int) -> Quaternion:
    """
    Hemisphere-aware inverse projection.

    The plain inverse always reconstructs a single branch. Here the scalar part
    is forced onto the hemisphere named by ``side`` (+1 or -1) and the result
    is renormalised.

    Args:
        p: Point in R³.
        side: Target hemisphere; any value > 0 means the w >= 0 branch.

    Returns:
        Unit quaternion whose w has the sign of ``side``.
    """
    q = inverse_stereographic_projection(p)
    sign = 1.0 if side > 0 else -1.0
    return normalize(Quaternion(abs(q.w) * sign, q.x, q.y, q.z))


# ---------------------------------------------------------------------------
# Vector helpers
# ---------------------------------------------------------------------------

def rotate_vector(v: Vector3D, q: Quaternion) -> Vector3D:
    """Rotate ``v`` by ``q`` via the sandwich product q * (0, v) * q⁻¹."""
    pure = Quaternion(0.0, v.x, v.y, v.z)
    r = multiply(multiply(q, pure), inverse(q))
    return Vector3D(r.x, r.y, r.z)


def add_vectors(a: Vector3D, b: Vector3D) -> Vector3D:
    return Vector3D(a.x + b.x, a.y + b.y, a.z + b.z)


def scale_vector(v: Vector3D, factor: float) -> Vector3D:
    return Vector3D(v.x * factor, v.y * factor, v.z * factor)


def magnitude_3d(v: Vector3D) -> float:
    return math.sqrt(v.x * v.x + v.y * v.y + v.z * v.z)


def distance_3d(a: Vector3D, b: Vector3D) -> float:
    dx = a.x - b.x
    dy = a.y - b.y
    dz = a.z - b.z
    return math.sqrt(dx * dx + dy * dy + dz * dz)
