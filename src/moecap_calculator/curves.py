from __future__ import annotations

from bisect import bisect_left
from collections.abc import Mapping
from types import MappingProxyType
from typing import Annotated, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer, field_validator

K = TypeVar("K")
V = TypeVar("V")

# Validated mappings are stored read-only; dumps still produce plain dicts.
ReadOnlyMapping = Annotated[
    Mapping[K, V],
    AfterValidator(lambda m: MappingProxyType(dict(m))),
    PlainSerializer(lambda m: dict(m)),
]


class ReferenceCurve(BaseModel):
    """Benchmarked bandwidth demand at the 100 ms reference TPOT.

    ``knots`` maps batch size to required bandwidth (GB/s). Inside the knot
    range values are linearly interpolated; outside it the nearest knot is held.
    """

    model_config = ConfigDict(frozen=True)

    knots: ReadOnlyMapping[int, float]
    dense_bandwidth_gbs: float | None = Field(default=None, gt=0.0)

    @field_validator("knots")
    @classmethod
    def _validate_knots(cls, v: Mapping[int, float]) -> Mapping[int, float]:
        if len(v) == 0:
            raise ValueError("knots must not be empty")
        sizes = list(v.keys())
        for prev, cur in zip(sizes, sizes[1:]):
            if cur <= prev:
                raise ValueError(f"knots must be strictly ascending by batch size: {prev} then {cur}")
        for batch_size, bandwidth in v.items():
            if batch_size < 1:
                raise ValueError(f"knot batch size must be >= 1: {batch_size}")
            if bandwidth <= 0:
                raise ValueError(f"knot bandwidth must be > 0: batch_size={batch_size} bandwidth={bandwidth}")
        return v

    @property
    def batch_sizes(self) -> list[int]:
        return list(self.knots.keys())

    @property
    def max_batch_size(self) -> int:
        return self.batch_sizes[-1]

    def covers(self, x: float) -> bool:
        sizes = self.batch_sizes
        return sizes[0] <= x <= sizes[-1]

    def interpolate(self, x: float) -> float:
        if x in self.knots:
            return self.knots[x]
        if not self.covers(x):
            raise ValueError(f"batch size {x} outside knot range [{self.batch_sizes[0]}, {self.max_batch_size}]")
        sizes = self.batch_sizes
        upper = bisect_left(sizes, x)
        x0, x1 = sizes[upper - 1], sizes[upper]
        y0, y1 = self.knots[x0], self.knots[x1]
        return y0 + (x - x0) / (x1 - x0) * (y1 - y0)

    def extrapolate(self, x: float) -> float:
        sizes = self.batch_sizes
        if x < sizes[0]:
            return self.knots[sizes[0]]
        if x > sizes[-1]:
            return self.knots[sizes[-1]]
        raise ValueError(f"batch size {x} is inside the knot range; use interpolate()")

    def value_at(self, x: float) -> float:
        if self.covers(x):
            return self.interpolate(x)
        return self.extrapolate(x)
