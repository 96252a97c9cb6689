import math

import pytest

from moecap_calculator.config import DeviceProfile
from moecap_calculator.errors import ConfigurationError, InvalidInput
from moecap_calculator.estimator import estimate_ttft, ttft_curve, ttft_ms
from moecap_calculator.registry import default_catalog


def test_compute_bound_prefill_on_h100() -> None:
    # 4000 tokens * 74 GFLOPs / 990 TFLOP/s
    estimate = estimate_ttft("H100-SXM", "deepseek-r1", batch_size=1, input_len=4000)
    assert estimate is not None
    assert estimate.bottleneck == "compute"
    assert estimate.compute_time_s == pytest.approx(4000 * 74 / 9.90e5)
    assert estimate.ttft_ms == pytest.approx(1000 * 4000 * 74 / 9.90e5)
    assert estimate.memory_time_s < estimate.compute_time_s


def test_memory_bound_prefill() -> None:
    device = DeviceProfile(
        name="slow-memory",
        category="test",
        peak_bandwidth_gbs=1.0,
        power_watts=100,
        peak_gflops=1e12,
    )
    estimate = estimate_ttft(device, "deepseek-r1", batch_size=2, input_len=1024)
    assert estimate is not None
    assert estimate.bottleneck == "memory"
    expected_gb = 2 * 1024 * 70272 / 1024**3
    assert estimate.total_kv_gb == pytest.approx(expected_gb)
    assert estimate.ttft_ms == pytest.approx(1000 * expected_gb)


def test_ttft_scales_with_batch_and_length() -> None:
    one = ttft_ms("A6000", "mixtral-8x7b", 1, 1000)
    assert one is not None
    assert ttft_ms("A6000", "mixtral-8x7b", 4, 1000) == pytest.approx(4 * one)
    assert ttft_ms("A6000", "mixtral-8x7b", 1, 3000) == pytest.approx(3 * one)


def test_missing_compute_data_is_absent_not_zero() -> None:
    for device in default_catalog():
        if device.peak_gflops is not None:
            continue
        value = ttft_ms(device, "deepseek-r1", 1, 4000)
        assert value is None
        assert estimate_ttft(device, "deepseek-r1", 1, 4000) is None


def test_defined_ttft_is_finite_and_positive() -> None:
    for device in default_catalog():
        value = ttft_ms(device, "qwen1.5-moe", 1, 4000)
        if device.peak_gflops is None:
            continue
        assert value is not None and value > 0 and not math.isnan(value)


def test_ttft_curve() -> None:
    curve = ttft_curve("4090", "mixtral-8x22b", [256, 1024, 4096])
    assert curve is not None
    assert [p.input_len for p in curve] == [256, 1024, 4096]
    assert curve[0].ttft_ms < curve[1].ttft_ms < curve[2].ttft_ms
    assert ttft_curve("AMD MI300X", "mixtral-8x22b", [256]) is None


def test_zero_input_length() -> None:
    assert ttft_ms("H100-SXM", "deepseek-r1", 1, 0) == 0.0


def test_ttft_rejects_bad_inputs() -> None:
    with pytest.raises(InvalidInput, match="batch_size"):
        estimate_ttft("H100-SXM", "deepseek-r1", 0, 100)
    with pytest.raises(InvalidInput, match="input_len"):
        estimate_ttft("H100-SXM", "deepseek-r1", 1, -1)
    with pytest.raises(ConfigurationError, match="unknown device"):
        estimate_ttft("TPU v9", "deepseek-r1", 1, 100)
