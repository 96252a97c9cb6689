from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator

from .config import BandwidthMode, DeviceProfile, ModelArchitecture, QueryContext
from .estimator import dense_baseline, estimate_demand, estimate_ttft, project_tpot_ms
from .registry import default_catalog, resolve_architecture
from .report import DeviceAssessment, Report, Sufficiency

logger = logging.getLogger(__name__)


def classify(
    device: DeviceProfile,
    required_bandwidth_gbs: float,
    mode: BandwidthMode | str = BandwidthMode.peak,
) -> Sufficiency | None:
    available = device.bandwidth_for(mode)
    if available is None:
        return None
    return Sufficiency.sufficient if available >= required_bandwidth_gbs else Sufficiency.insufficient


def for_each_device(
    catalog: Iterable[DeviceProfile],
    predicate: Callable[[DeviceProfile], bool] | None = None,
) -> Iterator[DeviceProfile]:
    for device in catalog:
        if predicate is None or predicate(device):
            yield device


def assess_devices(
    architecture: ModelArchitecture | str,
    context: QueryContext,
    catalog: Iterable[DeviceProfile] | None = None,
    mode: BandwidthMode | str = BandwidthMode.peak,
) -> list[DeviceAssessment]:
    """Annotate each device with projected TPOT, TTFT and sufficiency.

    In offload mode devices without a PCIe figure are skipped.
    """
    arch = resolve_architecture(architecture)
    mode = BandwidthMode(mode)
    devices = default_catalog() if catalog is None else catalog
    required = estimate_demand(arch, context).required_bandwidth_gbs

    out: list[DeviceAssessment] = []
    for device in for_each_device(devices, lambda d: d.bandwidth_for(mode) is not None):
        bandwidth = device.bandwidth_for(mode)
        tpot = project_tpot_ms(arch, context, device, mode)
        sufficiency = classify(device, required, mode)
        assert bandwidth is not None and tpot is not None and sufficiency is not None
        ttft = estimate_ttft(device, arch, context.batch_size, context.input_len)
        out.append(
            DeviceAssessment(
                name=device.name,
                category=device.category,
                bandwidth_gbs=bandwidth,
                power_watts=device.power_watts,
                tpot_ms=tpot,
                ttft_ms=None if ttft is None else ttft.ttft_ms,
                ttft_bottleneck=None if ttft is None else ttft.bottleneck,
                sufficiency=sufficiency,
            )
        )
    logger.debug(
        "assessed %d devices for %s (%s mode, %.2f GB/s required)", len(out), arch.id, mode.value, required
    )
    return out


def build_report(
    architecture: ModelArchitecture | str,
    context: QueryContext,
    catalog: Iterable[DeviceProfile] | None = None,
    mode: BandwidthMode | str = BandwidthMode.peak,
) -> Report:
    arch = resolve_architecture(architecture)
    mode = BandwidthMode(mode)
    demand = estimate_demand(arch, context)
    if demand.source == "reference":
        notes = [
            "Reference demand is benchmarked at 100 ms TPOT and scales linearly with 1/SLO.",
            "Batch sizes beyond the largest reference knot reuse that knot's bandwidth.",
        ]
    else:
        notes = [f"No {context.scenario.value} reference curve for {arch.name}; demand is closed-form."]

    return Report(
        generated_at=datetime.now(timezone.utc).isoformat(),
        architecture=arch.id,
        query=context,
        mode=mode,
        demand=demand,
        dense=dense_baseline(arch, context),
        devices=assess_devices(arch, context, catalog, mode),
        notes=notes,
    )
