from __future__ import annotations

import json
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError


def packaged_data(name: str) -> Traversable:
    return resources.files("moecap_calculator") / "data" / name


def read_data_file(path: str | Path | Traversable) -> dict[str, Any]:
    p = Path(path) if isinstance(path, str) else path
    if not p.is_file():
        raise FileNotFoundError(str(path))

    suffix = Path(p.name).suffix.lower()
    try:
        text = p.read_text(encoding="utf-8")
        if suffix in {".yaml", ".yml"}:
            raw = yaml.safe_load(text) or {}
        elif suffix == ".json":
            raw = json.loads(text)
        else:
            raise ConfigurationError(f"Unsupported data format: {suffix} (expected .json/.yaml/.yml)")
    except (UnicodeDecodeError, yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Failed to parse data file: {path}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Data file must contain a mapping at the top level: {path}")
    return raw
