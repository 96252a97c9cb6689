import pytest
from pydantic import ValidationError

from moecap_calculator.curves import ReferenceCurve


def _curve() -> ReferenceCurve:
    return ReferenceCurve(knots={1: 100.0, 32: 400.0, 64: 500.0, 128: 700.0}, dense_bandwidth_gbs=450.0)


def test_knot_points_are_exact() -> None:
    curve = _curve()
    for batch_size, bandwidth in curve.knots.items():
        assert curve.interpolate(batch_size) == bandwidth
        assert curve.value_at(batch_size) == bandwidth


def test_linear_between_knots() -> None:
    curve = _curve()
    # halfway between 32 and 64
    assert curve.interpolate(48) == pytest.approx(450.0)
    assert curve.value_at(96) == pytest.approx(600.0)


def test_flat_beyond_largest_knot() -> None:
    curve = _curve()
    assert curve.value_at(200) == curve.value_at(128)
    assert curve.extrapolate(10_000) == 700.0


def test_flat_below_smallest_knot() -> None:
    curve = ReferenceCurve(knots={8: 50.0, 16: 80.0})
    assert curve.value_at(2) == 50.0


def test_interpolate_rejects_points_outside_range() -> None:
    with pytest.raises(ValueError, match="outside knot range"):
        _curve().interpolate(129)


def test_extrapolate_rejects_points_inside_range() -> None:
    with pytest.raises(ValueError, match="inside the knot range"):
        _curve().extrapolate(40)


def test_single_knot_curve_is_constant() -> None:
    curve = ReferenceCurve(knots={1: 42.0})
    assert curve.value_at(1) == 42.0
    assert curve.value_at(64) == 42.0


def test_unsorted_knots_rejected() -> None:
    with pytest.raises(ValidationError, match="strictly ascending"):
        ReferenceCurve(knots={32: 400.0, 1: 100.0})


def test_non_positive_bandwidth_rejected() -> None:
    with pytest.raises(ValidationError, match="must be > 0"):
        ReferenceCurve(knots={1: 0.0})


def test_empty_knots_rejected() -> None:
    with pytest.raises(ValidationError, match="must not be empty"):
        ReferenceCurve(knots={})


def test_knots_are_read_only_and_dump_as_dict() -> None:
    source = {1: 100.0, 32: 400.0}
    curve = ReferenceCurve(knots=source)
    with pytest.raises(TypeError):
        curve.knots[1] = 5.0  # type: ignore[index]
    source[1] = 5.0
    assert curve.value_at(1) == 100.0
    assert curve.model_dump()["knots"] == {1: 100.0, 32: 400.0}
