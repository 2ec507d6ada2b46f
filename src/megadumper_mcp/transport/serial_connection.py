"""Serial connection to the Mega Dumper.

The port is driven by a pyserial ``ReaderThread``; every chunk it reads
is handed to the ``on_data`` callback on that thread, asynchronously
with respect to the caller that writes commands.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Callable

import serial
import serial.threaded
import serial.tools.list_ports

from ..errors import DumperIOError, PortUnavailableError, TransmissionTimeout
from ..protocol.commands import READ_TIMEOUT_MS

logger = logging.getLogger(__name__)

BAUD_RATE = 460800


@dataclass
class SerialConfig:
    """Line settings. The firmware only speaks 460800 8N1."""

    baudrate: int = BAUD_RATE
    bytesize: int = serial.EIGHTBITS
    parity: str = serial.PARITY_NONE
    stopbits: float = serial.STOPBITS_ONE
    read_timeout_ms: int = READ_TIMEOUT_MS
    write_timeout_ms: int = READ_TIMEOUT_MS


def list_ports() -> list[str]:
    """Return the names of the serial ports present on this machine."""
    return [p.device for p in serial.tools.list_ports.comports()]


class _ForwardingProtocol(serial.threaded.Protocol):
    """Forwards every chunk read by the reader thread to a callback."""

    def __init__(self, on_data: Callable[[bytes], None]) -> None:
        self._on_data = on_data

    def data_received(self, data: bytes) -> None:
        self._on_data(bytes(data))

    def connection_lost(self, exc: Exception | None) -> None:
        if exc is not None:
            logger.warning("Serial reader stopped: %s", exc)


class SerialConnection:
    """Manages one open/close cycle of the dumper's serial port.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0", on_data=handle_bytes)
        conn.open()
        conn.write(b"v")
        conn.close()
    """

    def __init__(
        self,
        port: str,
        on_data: Callable[[bytes], None],
        config: SerialConfig | None = None,
    ) -> None:
        self._port = port
        self._on_data = on_data
        self._config = config or SerialConfig()
        self._serial: serial.Serial | None = None
        self._reader: serial.threaded.ReaderThread | None = None

    @property
    def port(self) -> str:
        return self._port

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        """Open the port and start the reader thread.

        ``port`` may also be a pyserial URL such as ``loop://``.

        Raises:
            PortUnavailableError: If the port does not exist or is busy.
        """
        cfg = self._config
        try:
            ser = serial.serial_for_url(
                self._port,
                baudrate=cfg.baudrate,
                bytesize=cfg.bytesize,
                parity=cfg.parity,
                stopbits=cfg.stopbits,
                timeout=cfg.read_timeout_ms / 1000.0,
                write_timeout=cfg.write_timeout_ms / 1000.0,
            )
        except (serial.SerialException, OSError) as e:
            raise PortUnavailableError(
                f"Could not open serial port {self._port!r}: {e}"
            ) from e

        reader = serial.threaded.ReaderThread(
            ser, functools.partial(_ForwardingProtocol, self._on_data)
        )
        reader.start()
        try:
            reader.connect()
        except RuntimeError as e:
            reader.close()
            raise DumperIOError(f"Reader for {self._port!r} failed to start") from e

        self._serial = ser
        self._reader = reader
        logger.debug("Opened %s at %d baud", self._port, cfg.baudrate)

    def close(self) -> None:
        """Stop the reader thread and close the port."""
        if self._reader is None:
            return

        try:
            self._reader.close()
        except Exception as e:
            logger.warning("Error closing %s: %s", self._port, e)
        finally:
            self._reader = None
            self._serial = None
            logger.debug("Closed %s", self._port)

    def write(self, data: bytes) -> int:
        """Write raw bytes to the device.

        Raises:
            DumperIOError: If the port is not open or the write fails.
            TransmissionTimeout: If the write timed out.
        """
        if not self.connected:
            raise DumperIOError(f"Serial port {self._port!r} is not open")

        try:
            written = self._serial.write(data)
            self._serial.flush()
        except serial.SerialTimeoutException as e:
            raise TransmissionTimeout(f"Write to {self._port!r} timed out") from e
        except serial.SerialException as e:
            raise DumperIOError(f"Write to {self._port!r} failed: {e}") from e
        return written or 0
