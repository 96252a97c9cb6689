from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from .config import BandwidthMode, QueryContext


class Sufficiency(str, Enum):
    sufficient = "sufficient"
    insufficient = "insufficient"


class DemandEstimate(BaseModel):
    required_bandwidth_gbs: float = Field(..., ge=0.0)
    active_param_gb: float = Field(..., ge=0.0)
    kv_cache_gb: float = Field(..., ge=0.0)
    unique_experts: float = Field(..., ge=0.0)
    source: Literal["reference", "closed_form"]


class DenseBaseline(BaseModel):
    dense_bandwidth_gbs: float = Field(..., ge=0.0)
    closest_batch_size: int = Field(..., ge=1)
    closest_bandwidth_gbs: float = Field(..., ge=0.0)

    @property
    def relative_gap(self) -> float:
        return abs(self.closest_bandwidth_gbs - self.dense_bandwidth_gbs) / self.dense_bandwidth_gbs


class TTFTEstimate(BaseModel):
    input_len: int = Field(..., ge=0)
    batch_size: int = Field(..., ge=1)
    total_compute_gflops: float = Field(..., ge=0.0)
    total_kv_gb: float = Field(..., ge=0.0)
    compute_time_s: float = Field(..., ge=0.0)
    memory_time_s: float = Field(..., ge=0.0)
    ttft_ms: float = Field(..., ge=0.0)
    bottleneck: Literal["compute", "memory"]


class DeviceAssessment(BaseModel):
    name: str
    category: str
    bandwidth_gbs: float = Field(..., gt=0.0)
    power_watts: float = Field(..., gt=0.0)
    tpot_ms: float = Field(..., ge=0.0)
    ttft_ms: float | None = None
    ttft_bottleneck: Literal["compute", "memory"] | None = None
    sufficiency: Sufficiency


class BatchCurvePoint(BaseModel):
    batch_size: int = Field(..., ge=1)
    required_bandwidth_gbs: float = Field(..., ge=0.0)
    achievable_bandwidth_gbs: float = Field(..., ge=0.0)
    unique_experts: float = Field(..., ge=0.0)


class Report(BaseModel):
    generated_at: str
    architecture: str
    query: QueryContext
    mode: BandwidthMode
    demand: DemandEstimate
    dense: DenseBaseline
    devices: list[DeviceAssessment]
    notes: list[str] = Field(default_factory=list)
