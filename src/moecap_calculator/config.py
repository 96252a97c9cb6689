from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .curves import ReadOnlyMapping, ReferenceCurve
from .errors import ConfigurationError, InvalidInput
from .io import read_data_file


class ContextScenario(str, Enum):
    five_k = "5k"
    fourteen_k = "14k"


# (input_len, output_len) driven by each scenario
SCENARIO_LENGTHS: dict[ContextScenario, tuple[int, int]] = {
    ContextScenario.five_k: (4000, 1000),
    ContextScenario.fourteen_k: (13000, 1000),
}


class BandwidthMode(str, Enum):
    peak = "peak"
    offload = "offload"


class ModelArchitecture(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    n_layers: int = Field(..., ge=1)
    d_model: int = Field(..., ge=1)
    n_heads: int = Field(..., ge=1)
    d_head: int = Field(..., ge=1)
    n_kv_heads: int = Field(..., ge=1)
    n_experts: int = Field(..., ge=1)
    top_k: int = Field(..., ge=1)
    bytes_per_param: float = Field(2.0, gt=0.0)
    activated_params_b: float = Field(..., gt=0.0)
    total_params_b: float = Field(..., gt=0.0)
    kv_gb_per_token: float = Field(..., ge=0.0)
    ref_seq_len: int = Field(5000, ge=1)
    per_token_compute_gflops: float = Field(..., gt=0.0)
    per_token_kv_bytes: float = Field(..., ge=0.0)
    # Divisor reconciling projected TPOT with measured benchmarks.
    tpot_calibration_factor: float = Field(1.0, gt=0.0)
    smbu_by_batch: ReadOnlyMapping[int, float] = Field(default_factory=dict, validate_default=True)
    curves: ReadOnlyMapping[ContextScenario, ReferenceCurve] = Field(default_factory=dict, validate_default=True)

    @field_validator("top_k")
    @classmethod
    def _validate_top_k(cls, v: int, info):  # noqa: ANN001
        n_experts = info.data.get("n_experts")
        if n_experts is not None and v > n_experts:
            raise ValueError(f"top_k ({v}) must not exceed n_experts ({n_experts})")
        return v

    @field_validator("smbu_by_batch")
    @classmethod
    def _validate_smbu(cls, v: Mapping[int, float]) -> Mapping[int, float]:
        for batch_size, smbu in v.items():
            if not 0.0 < smbu <= 1.0:
                raise ValueError(f"smbu_by_batch[{batch_size}] must be in (0, 1]: {smbu}")
        return v

    @model_validator(mode="after")
    def _validate_params(self) -> "ModelArchitecture":
        if self.activated_params_b > self.total_params_b:
            raise ValueError(
                f"activated_params_b ({self.activated_params_b}) exceeds total_params_b ({self.total_params_b})"
            )
        return self

    @property
    def active_param_gb(self) -> float:
        return self.activated_params_b * self.bytes_per_param

    @property
    def total_param_gb(self) -> float:
        return self.total_params_b * self.bytes_per_param

    @property
    def per_token_kv_gb(self) -> float:
        return self.per_token_kv_bytes / (1024 ** 3)

    def curve_for(self, scenario: ContextScenario | str) -> ReferenceCurve | None:
        return self.curves.get(ContextScenario(scenario))


class DeviceProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    category: str
    peak_bandwidth_gbs: float = Field(..., gt=0.0)
    pcie_bandwidth_gbs: float | None = Field(default=None, gt=0.0)
    memory_gb: float | None = Field(default=None, ge=0.0)
    power_watts: float = Field(..., gt=0.0)
    peak_gflops: float | None = Field(default=None, gt=0.0)

    def bandwidth_for(self, mode: BandwidthMode | str = BandwidthMode.peak) -> float | None:
        if BandwidthMode(mode) == BandwidthMode.offload:
            return self.pcie_bandwidth_gbs
        return self.peak_bandwidth_gbs


class QueryContext(BaseModel):
    """One evaluation request. Lengths default to the scenario's fixed pair."""

    model_config = ConfigDict(frozen=True)

    batch_size: int
    slo_ms: float
    scenario: ContextScenario = ContextScenario.five_k
    input_len: int = Field(..., ge=0)
    output_len: int = Field(..., ge=0)

    @model_validator(mode="before")
    @classmethod
    def _default_lengths(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        raw_scenario = data.get("scenario", ContextScenario.five_k)
        try:
            scenario = ContextScenario(raw_scenario)
        except ValueError as exc:
            known = ", ".join(s.value for s in ContextScenario)
            raise InvalidInput(f"unknown context scenario: {raw_scenario!r} (expected one of: {known})") from exc
        input_len, output_len = SCENARIO_LENGTHS[scenario]
        data = dict(data)
        data["scenario"] = scenario
        data.setdefault("input_len", input_len)
        data.setdefault("output_len", output_len)
        return data

    @field_validator("batch_size")
    @classmethod
    def _validate_batch_size(cls, v: int) -> int:
        if v < 1:
            raise InvalidInput(f"batch_size must be >= 1, got {v}")
        return v

    @field_validator("slo_ms")
    @classmethod
    def _validate_slo(cls, v: float) -> float:
        if not v > 0:
            raise InvalidInput(f"slo_ms must be > 0, got {v}")
        return v

    @property
    def slo_seconds(self) -> float:
        return self.slo_ms / 1000.0

    @property
    def seq_len(self) -> int:
        return self.input_len + self.output_len

    def with_batch_size(self, batch_size: int) -> "QueryContext":
        return type(self).model_validate({**self.model_dump(), "batch_size": batch_size})

    def with_slo(self, slo_ms: float) -> "QueryContext":
        return type(self).model_validate({**self.model_dump(), "slo_ms": slo_ms})


class ArchitectureTable(BaseModel):
    version: int = Field(1, ge=1)
    architectures: list[ModelArchitecture]

    @classmethod
    def from_file(cls, path: str | Path | Traversable) -> "ArchitectureTable":
        data = read_data_file(path)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid architecture table: {path}\n{exc}") from exc


class HardwareTable(BaseModel):
    version: int = Field(1, ge=1)
    devices: list[DeviceProfile]

    @classmethod
    def from_file(cls, path: str | Path | Traversable) -> "HardwareTable":
        data = read_data_file(path)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid hardware table: {path}\n{exc}") from exc
