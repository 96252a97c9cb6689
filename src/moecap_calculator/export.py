from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, TextIO

from pydantic import BaseModel


def write_csv(rows: Iterable[BaseModel], out: TextIO) -> int:
    """Write pydantic rows as CSV; absent values become empty cells."""
    writer: csv.DictWriter | None = None
    count = 0
    for row in rows:
        payload = row.model_dump(mode="json")
        if writer is None:
            writer = csv.DictWriter(out, fieldnames=list(payload.keys()), lineterminator="\n")
            writer.writeheader()
        writer.writerow(payload)
        count += 1
    return count


def write_csv_file(rows: Iterable[BaseModel], path: str | Path) -> int:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8", newline="") as fh:
        return write_csv(rows, fh)
