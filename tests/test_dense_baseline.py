import pytest

from moecap_calculator.config import QueryContext
from moecap_calculator.estimator import (
    batch_scan_sizes,
    closest_batch_size_to_dense,
    dense_bandwidth,
    dense_baseline,
    required_bandwidth,
)


def _ctx(batch_size: int = 1, slo_ms: float = 100.0, scenario: str = "5k") -> QueryContext:
    return QueryContext(batch_size=batch_size, slo_ms=slo_ms, scenario=scenario)


def test_scan_lattice() -> None:
    sizes = batch_scan_sizes()
    assert sizes[:32] == list(range(1, 33))
    assert sizes[32:48] == list(range(34, 65, 2))
    assert sizes[-1] == 256
    assert 128 in sizes
    assert all(b % 4 == 0 for b in sizes if b > 64)


def test_dense_reference_scales_with_slo() -> None:
    assert dense_bandwidth("deepseek-r1", _ctx()) == pytest.approx(13719.8272)
    assert dense_bandwidth("deepseek-r1", _ctx(slo_ms=50)) == pytest.approx(2 * 13719.8272)
    assert dense_bandwidth("deepseek-r1", _ctx(scenario="14k")) == pytest.approx(14259.51616)


def test_dense_fallback_without_reference() -> None:
    # Qwen3-30B-A3B: 30B * 2 bytes + 0.000098304 GB/token * 5000 reference tokens, at batch 1
    assert dense_bandwidth("qwen3-30b-a3b", _ctx(batch_size=64)) == pytest.approx((60.0 + 0.49152) / 0.1)


def test_closest_batch_size_matches_dense_bandwidth() -> None:
    for arch in ("mixtral-8x7b", "qwen1.5-moe", "mixtral-8x22b"):
        for slo in (50, 100):
            ctx = _ctx(slo_ms=slo)
            b = closest_batch_size_to_dense(arch, ctx)
            dense = dense_bandwidth(arch, ctx)
            assert required_bandwidth(arch, ctx.with_batch_size(b)) == pytest.approx(dense, rel=0.05)


def test_closest_batch_size_mixtral_8x7b() -> None:
    # 926.35 @32 rising 7.08 GB/s per batch: 940.5 @34 is nearest to 946.55
    baseline = dense_baseline("mixtral-8x7b", _ctx())
    assert baseline.closest_batch_size == 34
    assert baseline.relative_gap < 0.01


def test_closest_batch_size_independent_of_query_batch() -> None:
    assert closest_batch_size_to_dense("qwen1.5-moe", _ctx(batch_size=1)) == closest_batch_size_to_dense(
        "qwen1.5-moe", _ctx(batch_size=200)
    )


def test_curve_below_dense_line_stops_at_largest_knot() -> None:
    # DeepSeek-R1 tops out at 11753 GB/s while the dense line sits at 13720 GB/s.
    baseline = dense_baseline("deepseek-r1", _ctx())
    assert baseline.closest_batch_size == 128
    assert baseline.closest_bandwidth_gbs < baseline.dense_bandwidth_gbs
