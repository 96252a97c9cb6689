from .comparison import assess_devices, build_report, classify, for_each_device
from .config import BandwidthMode, ContextScenario, DeviceProfile, ModelArchitecture, QueryContext
from .errors import CalculatorError, ConfigurationError, InvalidInput
from .estimator import (
    closest_batch_size_to_dense,
    dense_bandwidth,
    dense_baseline,
    estimate_demand,
    estimate_ttft,
    expected_unique_experts,
    project_tpot_ms,
    required_bandwidth,
    ttft_ms,
)
from .registry import HardwareCatalog, ModelArchitectureRegistry

__version__ = "0.1.0"

__all__ = [
    "BandwidthMode",
    "CalculatorError",
    "ConfigurationError",
    "ContextScenario",
    "DeviceProfile",
    "HardwareCatalog",
    "InvalidInput",
    "ModelArchitecture",
    "ModelArchitectureRegistry",
    "QueryContext",
    "assess_devices",
    "build_report",
    "classify",
    "closest_batch_size_to_dense",
    "dense_bandwidth",
    "dense_baseline",
    "estimate_demand",
    "estimate_ttft",
    "expected_unique_experts",
    "for_each_device",
    "project_tpot_ms",
    "required_bandwidth",
    "ttft_ms",
]
