from __future__ import annotations

import logging
from typing import Iterable

from .config import BandwidthMode, DeviceProfile, ModelArchitecture, QueryContext
from .errors import InvalidInput
from .registry import resolve_architecture, resolve_device
from .report import BatchCurvePoint, DemandEstimate, DenseBaseline, TTFTEstimate

logger = logging.getLogger(__name__)

# Reference curves are benchmarked at this TPOT.
REFERENCE_TPOT_MS = 100.0
# Achievable fraction of peak bandwidth when an architecture has no measured S-MBU.
DEFAULT_SMBU = 0.1633
BATCH_SCAN_LIMIT = 256


def _check_query(batch_size: int, slo_ms: float) -> None:
    if batch_size < 1:
        raise InvalidInput(f"batch_size must be >= 1, got {batch_size}")
    if not slo_ms > 0:
        raise InvalidInput(f"slo_ms must be > 0, got {slo_ms}")


def slo_scale(slo_ms: float) -> float:
    """Factor turning 100 ms reference bandwidth into bandwidth at ``slo_ms``."""
    if not slo_ms > 0:
        raise InvalidInput(f"slo_ms must be > 0, got {slo_ms}")
    return REFERENCE_TPOT_MS / slo_ms


def expected_unique_experts(n_experts: int, top_k: int, batch_size: int) -> float:
    """Expected distinct experts hit by ``batch_size * top_k`` uniform draws with replacement."""
    if n_experts < 1:
        raise InvalidInput(f"n_experts must be >= 1, got {n_experts}")
    if top_k < 1:
        raise InvalidInput(f"top_k must be >= 1, got {top_k}")
    if batch_size < 1:
        raise InvalidInput(f"batch_size must be >= 1, got {batch_size}")
    draws = batch_size * top_k
    return n_experts * (1.0 - (1.0 - 1.0 / n_experts) ** draws)


def _required_bandwidth(
    arch: ModelArchitecture,
    context: QueryContext,
    batch_size: int,
    slo_ms: float,
) -> tuple[float, str]:
    curve = arch.curve_for(context.scenario)
    if curve is not None:
        return curve.value_at(batch_size) * slo_scale(slo_ms), "reference"

    kv_cache_gb = arch.kv_gb_per_token * context.seq_len * batch_size
    return (arch.active_param_gb + kv_cache_gb) / (slo_ms / 1000.0), "closed_form"


def estimate_demand(architecture: ModelArchitecture | str, context: QueryContext) -> DemandEstimate:
    arch = resolve_architecture(architecture)
    _check_query(context.batch_size, context.slo_ms)

    required, source = _required_bandwidth(arch, context, context.batch_size, context.slo_ms)
    if source == "closed_form":
        logger.warning("no %s reference curve for %s; using closed-form demand", context.scenario.value, arch.id)
    return DemandEstimate(
        required_bandwidth_gbs=required,
        active_param_gb=arch.active_param_gb,
        kv_cache_gb=arch.kv_gb_per_token * context.seq_len * context.batch_size,
        unique_experts=expected_unique_experts(arch.n_experts, arch.top_k, context.batch_size),
        source=source,
    )


def required_bandwidth(architecture: ModelArchitecture | str, context: QueryContext) -> float:
    return estimate_demand(architecture, context).required_bandwidth_gbs


def dense_bandwidth(architecture: ModelArchitecture | str, context: QueryContext) -> float:
    """Bandwidth needed with every expert resident, at ``context.slo_ms``."""
    arch = resolve_architecture(architecture)
    _check_query(context.batch_size, context.slo_ms)

    curve = arch.curve_for(context.scenario)
    if curve is not None and curve.dense_bandwidth_gbs is not None:
        return curve.dense_bandwidth_gbs * slo_scale(context.slo_ms)

    logger.warning("no %s dense reference for %s; using closed-form batch-1 load", context.scenario.value, arch.id)
    kv_cache_gb = arch.kv_gb_per_token * arch.ref_seq_len
    return (arch.total_param_gb + kv_cache_gb) / context.slo_seconds


def batch_scan_sizes(limit: int = BATCH_SCAN_LIMIT) -> list[int]:
    """Batch sizes 1..limit: step 1 below 32, step 2 below 64, step 4 after."""
    sizes: list[int] = []
    b = 1
    while b <= limit:
        sizes.append(b)
        b += 1 if b < 32 else (2 if b < 64 else 4)
    return sizes


def dense_baseline(architecture: ModelArchitecture | str, context: QueryContext) -> DenseBaseline:
    arch = resolve_architecture(architecture)
    target = dense_bandwidth(arch, context)

    best_batch = 1
    best_bw: float | None = None
    for b in batch_scan_sizes():
        bw, _ = _required_bandwidth(arch, context, b, context.slo_ms)
        if best_bw is None or abs(bw - target) < abs(best_bw - target):
            best_batch, best_bw = b, bw

    assert best_bw is not None
    return DenseBaseline(
        dense_bandwidth_gbs=target,
        closest_batch_size=best_batch,
        closest_bandwidth_gbs=best_bw,
    )


def closest_batch_size_to_dense(architecture: ModelArchitecture | str, context: QueryContext) -> int:
    return dense_baseline(architecture, context).closest_batch_size


def estimate_ttft(
    device: DeviceProfile | str,
    architecture: ModelArchitecture | str,
    batch_size: int,
    input_len: int,
) -> TTFTEstimate | None:
    """Prefill latency bounded by the slower of compute and KV-cache writes.

    Returns None when the device has no peak compute figure.
    """
    dev = resolve_device(device)
    arch = resolve_architecture(architecture)
    if batch_size < 1:
        raise InvalidInput(f"batch_size must be >= 1, got {batch_size}")
    if input_len < 0:
        raise InvalidInput(f"input_len must be >= 0, got {input_len}")
    if dev.peak_gflops is None:
        logger.debug("device %s has no peak_gflops; TTFT undefined", dev.name)
        return None

    tokens = batch_size * input_len
    total_compute_gflops = tokens * arch.per_token_compute_gflops
    total_kv_gb = tokens * arch.per_token_kv_gb
    compute_time_s = total_compute_gflops / dev.peak_gflops
    memory_time_s = total_kv_gb / dev.peak_bandwidth_gbs
    return TTFTEstimate(
        input_len=input_len,
        batch_size=batch_size,
        total_compute_gflops=total_compute_gflops,
        total_kv_gb=total_kv_gb,
        compute_time_s=compute_time_s,
        memory_time_s=memory_time_s,
        ttft_ms=1000.0 * max(compute_time_s, memory_time_s),
        bottleneck="compute" if compute_time_s > memory_time_s else "memory",
    )


def ttft_ms(
    device: DeviceProfile | str,
    architecture: ModelArchitecture | str,
    batch_size: int,
    input_len: int,
) -> float | None:
    estimate = estimate_ttft(device, architecture, batch_size, input_len)
    return None if estimate is None else estimate.ttft_ms


def ttft_curve(
    device: DeviceProfile | str,
    architecture: ModelArchitecture | str,
    input_lens: Iterable[int],
    batch_size: int = 1,
) -> list[TTFTEstimate] | None:
    dev = resolve_device(device)
    if dev.peak_gflops is None:
        return None
    out: list[TTFTEstimate] = []
    for input_len in input_lens:
        estimate = estimate_ttft(dev, architecture, batch_size, input_len)
        assert estimate is not None
        out.append(estimate)
    return out


def project_tpot_ms(
    architecture: ModelArchitecture | str,
    context: QueryContext,
    device: DeviceProfile | str,
    mode: BandwidthMode | str = BandwidthMode.peak,
) -> float | None:
    """Best-case TPOT on ``device`` for the workload in ``context``.

    The demand is taken at the 100 ms reference SLO, so the target SLO in
    ``context`` does not affect the projection. Returns None when the device
    has no bandwidth figure for ``mode``.
    """
    arch = resolve_architecture(architecture)
    dev = resolve_device(device)
    _check_query(context.batch_size, context.slo_ms)

    available = dev.bandwidth_for(mode)
    if available is None:
        return None
    reference_bw, _ = _required_bandwidth(arch, context, context.batch_size, REFERENCE_TPOT_MS)
    return REFERENCE_TPOT_MS * (reference_bw / available) / arch.tpot_calibration_factor


def smbu_for(architecture: ModelArchitecture | str, batch_size: int) -> float:
    arch = resolve_architecture(architecture)
    return arch.smbu_by_batch.get(batch_size, DEFAULT_SMBU)


def achievable_bandwidth(peak_bandwidth_gbs: float, num_devices: int = 1, smbu: float | None = None) -> float:
    """Sustained supply across ``num_devices``; ``smbu`` defaults to DEFAULT_SMBU."""
    if smbu is None:
        smbu = DEFAULT_SMBU
    if not peak_bandwidth_gbs > 0:
        raise InvalidInput(f"peak_bandwidth_gbs must be > 0, got {peak_bandwidth_gbs}")
    if num_devices < 1:
        raise InvalidInput(f"num_devices must be >= 1, got {num_devices}")
    if not 0.0 < smbu <= 1.0:
        raise InvalidInput(f"smbu must be in (0, 1], got {smbu}")
    return peak_bandwidth_gbs * num_devices * smbu


def sample_batch_curve(
    architecture: ModelArchitecture | str,
    context: QueryContext,
    peak_bandwidth_gbs: float,
    num_devices: int = 1,
    limit: int = BATCH_SCAN_LIMIT,
) -> list[BatchCurvePoint]:
    """Demand against achievable supply over the batch-size scan lattice."""
    arch = resolve_architecture(architecture)
    _check_query(context.batch_size, context.slo_ms)

    points: list[BatchCurvePoint] = []
    for b in batch_scan_sizes(limit):
        required, _ = _required_bandwidth(arch, context, b, context.slo_ms)
        points.append(
            BatchCurvePoint(
                batch_size=b,
                required_bandwidth_gbs=required,
                achievable_bandwidth_gbs=achievable_bandwidth(peak_bandwidth_gbs, num_devices, smbu_for(arch, b)),
                unique_experts=expected_unique_experts(arch.n_experts, arch.top_k, b),
            )
        )
    return points
