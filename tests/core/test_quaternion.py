"""Tests for quaternion algebra and stereographic projection."""

import math

import numpy as np
import pytest

from quatractor.core.quaternion import (
    IDENTITY,
    ORIGIN,
    Quaternion,
    Vector3D,
    conjugate,
    distance_3d,
    from_axis_angle,
    inverse,
    inverse_stereographic_projection,
    inverse_stereographic_projection_with_side,
    magnitude,
    magnitude_3d,
    multiply,
    normalize,
    rotate_vector,
    side_of,
    stereographic_projection,
)


def _random_unit_quaternions(n: int, seed: int = 0):
    rng = np.random.default_rng(seed)
    for row in rng.normal(size=(n, 4)):
        yield normalize(Quaternion(*map(float, row)))


def _assert_quat_close(a: Quaternion, b: Quaternion, tol: float = 1e-6):
    for ca, cb in zip(a, b):
        assert ca == pytest.approx(cb, abs=tol)


class TestNormalize:
    def test_unit_length(self):
        for q in [Quaternion(3, 4, 0, 0), Quaternion(0.6, 0.4, 0.3, 0.2), Quaternion(-2, 1, -7, 0.5)]:
            assert magnitude(normalize(q)) == pytest.approx(1.0)

    def test_zero_maps_to_identity(self):
        assert normalize(Quaternion(0, 0, 0, 0)) == IDENTITY

    def test_tiny_input_stays_finite(self):
        q = normalize(Quaternion(1e-200, 0, 0, 1e-200))
        assert all(math.isfinite(c) for c in q)


class TestMultiply:
    def test_identity_right(self):
        q = Quaternion(0.6, 0.4, 0.3, 0.2)
        assert multiply(q, IDENTITY) == q

    def test_identity_left(self):
        q = Quaternion(-0.1, 0.7, 0.3, -0.2)
        assert multiply(IDENTITY, q) == q

    def test_basis_products(self):
        i = Quaternion(0, 1, 0, 0)
        j = Quaternion(0, 0, 1, 0)
        assert multiply(i, j) == Quaternion(0, 0, 0, 1)
        assert multiply(j, i) == Quaternion(0, 0, 0, -1)

    def test_not_commutative(self):
        a = Quaternion(0.6, 0.4, 0.3, 0.2)
        b = Quaternion(0.1, -0.5, 0.8, 0.3)
        assert multiply(a, b) != multiply(b, a)

    def test_associative(self):
        a, b, c = list(_random_unit_quaternions(3, seed=3))
        _assert_quat_close(
            multiply(multiply(a, b), c),
            multiply(a, multiply(b, c)),
            tol=1e-12,
        )

    def test_conjugate_product_is_norm(self):
        q = Quaternion(1, 2, 3, 4)
        p = multiply(q, conjugate(q))
        _assert_quat_close(p, Quaternion(30, 0, 0, 0), tol=1e-12)

    def test_inverse(self):
        q = Quaternion(1, 2, 3, 4)
        _assert_quat_close(multiply(q, inverse(q)), IDENTITY, tol=1e-12)
        assert inverse(Quaternion(0, 0, 0, 0)) == IDENTITY


class TestStereographicProjection:
    def test_pole_returns_origin(self):
        assert stereographic_projection(IDENTITY) == ORIGIN

    def test_near_pole_returns_origin(self):
        q = Quaternion(1.0 - 1e-12, 0.0, 1e-6, 0.0)
        assert stereographic_projection(q) == ORIGIN

    def test_south_pole_maps_to_origin(self):
        p = stereographic_projection(Quaternion(-1, 0, 0, 0))
        assert p == Vector3D(0.0, 0.0, 0.0)

    def test_equator_maps_to_unit_sphere(self):
        p = stereographic_projection(Quaternion(0, 0.6, 0.8, 0))
        assert magnitude_3d(p) == pytest.approx(1.0)

    def test_plain_inverse_lands_on_sphere(self):
        q = inverse_stereographic_projection(Vector3D(0.3, -1.2, 2.0))
        assert magnitude(q) == pytest.approx(1.0)

    def test_round_trip_with_side(self):
        for q in _random_unit_quaternions(200, seed=11):
            if abs(1.0 - q.w) < 1e-3:
                continue
            back = inverse_stereographic_projection_with_side(
                stereographic_projection(q), side_of(q)
            )
            _assert_quat_close(back, q)

    def test_side_forces_hemisphere(self):
        p = Vector3D(0.2, 0.0, 0.0)
        upper = inverse_stereographic_projection_with_side(p, 1)
        lower = inverse_stereographic_projection_with_side(p, -1)
        assert upper.w > 0
        assert lower.w < 0
        assert upper.w == pytest.approx(-lower.w)
        assert (upper.x, upper.y, upper.z) == pytest.approx((lower.x, lower.y, lower.z))
        assert magnitude(upper) == pytest.approx(1.0)
        assert magnitude(lower) == pytest.approx(1.0)


class TestSideOf:
    def test_signs(self):
        assert side_of(Quaternion(0.3, 0, 0, 0)) == 1
        assert side_of(Quaternion(-0.3, 0, 0, 0)) == -1

    def test_zero_is_positive(self):
        assert side_of(Quaternion(0.0, 1, 0, 0)) == 1


class TestVectors:
    def test_rotate_quarter_turn_about_z(self):
        q = from_axis_angle((0, 0, 1), math.pi / 2)
        v = rotate_vector(Vector3D(1, 0, 0), q)
        assert v == pytest.approx((0.0, 1.0, 0.0), abs=1e-12)

    def test_rotation_preserves_length(self):
        v = Vector3D(0.3, -1.1, 2.4)
        for q in _random_unit_quaternions(20, seed=5):
            assert magnitude_3d(rotate_vector(v, q)) == pytest.approx(magnitude_3d(v))

    def test_identity_rotation(self):
        v = Vector3D(1.5, -2.0, 0.25)
        assert rotate_vector(v, IDENTITY) == pytest.approx(v)

    def test_zero_axis_is_identity(self):
        assert from_axis_angle((0, 0, 0), 1.0) == IDENTITY

    def test_magnitude_and_distance(self):
        assert magnitude_3d(Vector3D(3, 4, 0)) == pytest.approx(5.0)
        assert distance_3d(Vector3D(1, 1, 1), Vector3D(1, 4, 5)) == pytest.approx(5.0)
