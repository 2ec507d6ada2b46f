"""Data models for the cartridge header, operation results and progress."""

from .header import RomHeader
from .result import (
    DumpData,
    Operation,
    OperationResult,
    Phase,
    ProgressEvent,
    ReturnCode,
)
