from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Union

MetricValue = Union[float, int, str]

AGENT_DATA = "agent data"

_INFO_FIELD = re.compile(r"(processed|failed|total):\s*(\d+)")


@dataclass(frozen=True)
class MetricRecord:
    host: str
    key: str
    value: MetricValue
    clock: int

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("host must be a non-empty string")
        if not self.key:
            raise ValueError("key must be a non-empty string")

    @classmethod
    def now(cls, host: str, key: str, value: MetricValue) -> "MetricRecord":
        return cls(host=host, key=key, value=value, clock=int(time.time()))

    def to_dict(self) -> dict[str, Any]:
        return {"host": self.host, "key": self.key, "value": self.value, "clock": self.clock}


@dataclass(frozen=True)
class MetricBatch:
    records: tuple[MetricRecord, ...] = ()
    request: str = field(default=AGENT_DATA, init=False)

    @classmethod
    def of(cls, records: Iterable[MetricRecord]) -> "MetricBatch":
        return cls(records=tuple(records))

    def __len__(self) -> int:
        return len(self.records)

    def to_dict(self) -> dict[str, Any]:
        return {"request": self.request, "data": [r.to_dict() for r in self.records]}


@dataclass(frozen=True)
class ServerAddress:
    host: str
    port: int

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("host must be a non-empty string")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ValueError(f"port must be an integer, got {self.port!r}")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be in [1, 65535], got {self.port}")

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class ServerResponse:
    """Reply body sent back by the server, e.g.

    {"response": "success", "info": "processed: 1; failed: 0; total: 1; seconds spent: 0.000055"}
    """

    response: str
    info: str = ""

    @property
    def ok(self) -> bool:
        return self.response == "success"

    def _info_field(self, name: str) -> int | None:
        for k, v in _INFO_FIELD.findall(self.info):
            if k == name:
                return int(v)
        return None

    @property
    def processed(self) -> int | None:
        return self._info_field("processed")

    @property
    def failed(self) -> int | None:
        return self._info_field("failed")

    @property
    def total(self) -> int | None:
        return self._info_field("total")
