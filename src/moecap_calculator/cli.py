from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .comparison import build_report
from .config import BandwidthMode, ContextScenario, QueryContext
from .errors import CalculatorError
from .estimator import sample_batch_curve
from .export import write_csv_file
from .registry import HardwareCatalog, ModelArchitectureRegistry

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s: %(message)s"


def _existing_path(value: str) -> Path:
    path = Path(value)
    if not path.exists():
        raise argparse.ArgumentTypeError(f"File not found: {value}")
    return path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="moecap-calculator", add_help=True)
    parser.add_argument("--model", required=True, help="Architecture id or name (e.g. deepseek-r1)")
    parser.add_argument("--batch-size", type=int, default=1, help="Decode batch size (default: 1)")
    parser.add_argument("--slo-ms", type=float, default=100.0, help="Target TPOT in ms (default: 100)")
    parser.add_argument(
        "--scenario",
        choices=[s.value for s in ContextScenario],
        default=ContextScenario.five_k.value,
        help="Context scenario (default: 5k)",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in BandwidthMode],
        default=BandwidthMode.peak.value,
        help="Compare against peak memory or offload (PCIe) bandwidth",
    )
    parser.add_argument("--category", default=None, help="Only assess devices in this category")
    parser.add_argument("--models-file", type=_existing_path, default=None, help="Architecture table (yaml|json)")
    parser.add_argument("--hardware-file", type=_existing_path, default=None, help="Hardware table (yaml|json)")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write report JSON to this path (default: stdout)",
    )
    parser.add_argument("--csv", type=Path, default=None, help="Also write device assessments as CSV")
    parser.add_argument("--curve-csv", type=Path, default=None, help="Write the batch-size demand curve as CSV")
    parser.add_argument(
        "--supply-bandwidth",
        type=float,
        default=768.0,
        help="Per-device peak bandwidth (GB/s) for the curve's supply line (default: 768)",
    )
    parser.add_argument("--num-devices", type=int, default=1, help="Device count for the supply line")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S", stream=sys.stderr)

    try:
        registry = (
            ModelArchitectureRegistry.default()
            if args.models_file is None
            else ModelArchitectureRegistry.from_file(args.models_file)
        )
        catalog = HardwareCatalog.default() if args.hardware_file is None else HardwareCatalog.from_file(args.hardware_file)
        if args.category is not None:
            catalog = catalog.filter(lambda d: d.category == args.category)

        architecture = registry.get(args.model)
        context = QueryContext(batch_size=args.batch_size, slo_ms=args.slo_ms, scenario=args.scenario)
        report = build_report(architecture, context, catalog, args.mode)

        if args.csv is not None:
            write_csv_file(report.devices, args.csv)
        if args.curve_csv is not None:
            curve = sample_batch_curve(architecture, context, args.supply_bandwidth, args.num_devices)
            write_csv_file(curve, args.curve_csv)
    except (CalculatorError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    payload = report.model_dump(mode="json")
    text = json.dumps(payload, indent=2, sort_keys=True)
    if args.output is None:
        print(text)
        return 0

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(text + "\n", encoding="utf-8")
    return 0
