"""High-level dumper operations: version, header, dump and autodetect.

Each exchange opens the serial port, runs a single command/response
through the :class:`TransmissionCoordinator`, and closes the port again.
"""

from __future__ import annotations

import functools
import logging
from typing import Callable, Iterable

from .errors import DumperError, ProtocolViolation
from .models.header import RomHeader
from .models.result import (
    DumpData,
    Operation,
    OperationResult,
    Phase,
    ProgressEvent,
    ReturnCode,
)
from .protocol.commands import (
    DUMP_IDLE_TIMEOUT_MS,
    FIRMWARE_STRING,
    HEADER_TIMEOUT_MS,
    READ_TIMEOUT_MS,
    ROM_HEADER_WINDOW,
    build_dump,
    build_header,
    build_version,
)
from .protocol.coordinator import TransmissionCoordinator
from .transport.serial_connection import SerialConfig, SerialConnection, list_ports
from .utils.byteswap import U32_MAX

logger = logging.getLogger(__name__)


def is_genuine(version: str) -> bool:
    """True if a version reply comes from the dumper firmware."""
    return version.startswith(FIRMWARE_STRING)


class MegaDumper:
    """Drives a Mega Dumper attached to a serial port.

    Usage::

        dumper = MegaDumper()
        found = dumper.autodetect()
        if found.ok:
            result = dumper.dump()
            rom = result.result.data

    Args:
        port: Serial port name; may be set later or found by :meth:`autodetect`.
        config: Line settings passed to each transport.
        transport_factory: Called as ``factory(port, on_data, config)``.
        port_lister: Returns the candidate port names for autodetection.
        header_parser: Turns the header window bytes into a :class:`RomHeader`.
        on_progress: Receives a :class:`ProgressEvent` for each progress step.
    """

    def __init__(
        self,
        port: str = "",
        *,
        config: SerialConfig | None = None,
        transport_factory: Callable = SerialConnection,
        port_lister: Callable[[], Iterable[str]] = list_ports,
        header_parser: Callable[[bytes], RomHeader] = RomHeader.from_bytes,
        on_progress: Callable[[ProgressEvent], None] | None = None,
    ) -> None:
        self.port = port
        self.on_progress = on_progress
        self._config = config or SerialConfig()
        self._transport_factory = transport_factory
        self._port_lister = port_lister
        self._header_parser = header_parser
        self._coordinator = TransmissionCoordinator()

    # ─── EXCHANGE PLUMBING ───────────────────────────────────────────

    def _relay_progress(self, phase: Phase, percent: int) -> None:
        self._publish(ProgressEvent(percent=percent, phase=phase))

    def _publish(self, event: ProgressEvent) -> None:
        if self.on_progress is not None:
            self.on_progress(event)

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Wait for progress still being delivered from the reader thread."""
        return self._coordinator.wait_idle(timeout)

    def _exchange(
        self,
        command: bytes,
        timeout_ms: int,
        phase: Phase,
        *,
        keepalive: bool = False,
        report_progress: bool = True,
    ) -> bytes:
        """Open the port, run one command/response, close the port."""
        self._coordinator.on_progress = functools.partial(self._relay_progress, phase)
        transport = self._transport_factory(
            self.port, self._coordinator.channel(), self._config
        )
        transport.open()
        try:
            return self._coordinator.send_and_wait(
                transport,
                command,
                timeout_ms,
                keepalive=keepalive,
                report_progress=report_progress,
            )
        finally:
            transport.close()

    # ─── OPERATIONS ──────────────────────────────────────────────────

    def get_version(self) -> str:
        """Query the firmware identity string.

        Returns an empty string if the port cannot be opened or nothing
        answers in time; use :func:`is_genuine` on the result.
        """
        return self._probe_version(report_progress=True)

    def _probe_version(self, report_progress: bool) -> str:
        try:
            raw = self._exchange(
                build_version(),
                READ_TIMEOUT_MS,
                Phase.VERSION,
                report_progress=report_progress,
            )
        except DumperError as e:
            logger.debug("No version from %r: %s", self.port, e)
            return ""
        return raw.decode("ascii", errors="replace")

    def get_header(self) -> OperationResult:
        """Read the raw header bytes via the Info command."""
        res = OperationResult(Operation.HEADER)
        try:
            raw = self._exchange(build_header(), HEADER_TIMEOUT_MS, Phase.HEADER)
        except DumperError as e:
            logger.warning("Header read on %r failed: %s", self.port, e)
            return res.fail(str(e))
        return res.succeed(raw)

    def dump(self, start: int = 0, end: int = 0) -> OperationResult:
        """Dump cartridge memory.

        With ``start`` and ``end`` both zero the header is read first and
        the ROM range it declares is dumped. Otherwise ``[start, end)`` is
        dumped directly.

        Raises:
            ValueError: If the explicit range is reversed or exceeds 32 bits.
        """
        if not (0 <= start <= U32_MAX and 0 <= end <= U32_MAX):
            raise ValueError(f"Addresses must be 0-{U32_MAX:#x}")
        if start > end:
            raise ValueError(f"Start 0x{start:X} is past end 0x{end:X}")

        res = OperationResult(Operation.DUMP)
        header = None
        try:
            if start == 0 and end == 0:
                header = self._read_rom_header()
                start, end = header.rom_start, header.rom_end >> 1
                if start > end:
                    raise ProtocolViolation(
                        f"Header declares an empty ROM range "
                        f"0x{start:X}-0x{end:X}"
                    )

            logger.info("Dumping 0x%08X-0x%08X from %s", start, end, self.port)
            data = self._exchange(
                build_dump(start, end),
                DUMP_IDLE_TIMEOUT_MS,
                Phase.ROM,
                keepalive=True,
            )
        except DumperError as e:
            logger.warning("Dump on %r failed: %s", self.port, e)
            return res.fail(str(e))

        res.succeed(DumpData(start=start, end=end, data=data, header=header))
        logger.info("Dumped %d bytes in %.2fs", len(data), res.duration)
        return res

    def _read_rom_header(self) -> RomHeader:
        raw = self._exchange(
            build_dump(*ROM_HEADER_WINDOW),
            DUMP_IDLE_TIMEOUT_MS,
            Phase.ROM_HEADER,
            keepalive=True,
        )
        header = self._header_parser(raw)
        self._publish(ProgressEvent(percent=0, phase=Phase.ROM_HEADER, header=header))
        return header

    def autodetect(self) -> OperationResult:
        """Probe every serial port until one answers with the dumper firmware.

        On success ``self.port`` is left on the found port.
        """
        res = OperationResult(Operation.AUTODETECT)
        previous = self.port
        for port in self._port_lister():
            self.port = port
            version = self._probe_version(report_progress=False)
            if is_genuine(version):
                logger.info("Found %s on %s", version.strip(), port)
                return res.succeed(port)

        self.port = previous
        return res.fail("No dumper found", code=ReturnCode.NOT_FOUND)
