"""Operation results and progress events."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any

from .header import RomHeader


class Operation(Enum):
    VERSION = "version"
    HEADER = "header"
    DUMP = "dump"
    AUTODETECT = "autodetect"


class ReturnCode(IntEnum):
    OK = 0
    ERROR = -1
    NOT_FOUND = 1


class Phase(Enum):
    """Which exchange a progress event belongs to."""

    VERSION = "version"
    HEADER = "header"
    ROM_HEADER = "rom_header"
    ROM = "rom"


@dataclass(frozen=True)
class ProgressEvent:
    """Progress of the running exchange, 0-100.

    ``header`` is only set on the checkpoint emitted once the two-phase
    dump has decoded the cartridge header.
    """

    percent: int
    phase: Phase
    header: RomHeader | None = None


@dataclass
class DumpData:
    """Bytes read from ``[start, end)`` of the cartridge."""

    start: int
    end: int
    data: bytes
    header: RomHeader | None = None

    def to_dict(self, include_data: bool = True) -> dict:
        d: dict[str, Any] = {
            "start": f"0x{self.start:08X}",
            "end": f"0x{self.end:08X}",
            "size": len(self.data),
        }
        if self.header is not None:
            d["header"] = self.header.to_dict()
        if include_data:
            d["data_base64"] = base64.b64encode(self.data).decode("ascii")
        return d


@dataclass
class OperationResult:
    """Outcome of one dumper operation, timestamps bracketing all its exchanges."""

    operation: Operation
    result: Any = None
    started: datetime = field(default_factory=datetime.now)
    finished: datetime | None = None
    code: ReturnCode = ReturnCode.ERROR
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.code == ReturnCode.OK

    @property
    def duration(self) -> float:
        """Elapsed seconds, 0.0 while the operation is still running."""
        if self.finished is None:
            return 0.0
        return (self.finished - self.started).total_seconds()

    def succeed(self, result: Any) -> OperationResult:
        self.result = result
        self.code = ReturnCode.OK
        self.error = ""
        self.finished = datetime.now()
        return self

    def fail(self, error: str, code: ReturnCode = ReturnCode.ERROR) -> OperationResult:
        self.result = None
        self.code = code
        self.error = error
        self.finished = datetime.now()
        return self

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "operation": self.operation.value,
            "code": self.code.name,
            "duration_s": round(self.duration, 3),
        }
        if self.error:
            d["error"] = self.error
        return d
