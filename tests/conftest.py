"""Shared fixtures: a scripted dumper standing in for the serial port."""

from __future__ import annotations

import threading
import time
from typing import Callable

import pytest

from megadumper_mcp.errors import PortUnavailableError


def frame(payload: bytes) -> bytes:
    """Prefix ``payload`` with its little-endian length, as the firmware does."""
    return len(payload).to_bytes(4, "little") + payload


class FakeTransport:
    """Transport double created by :meth:`FakeDevice.factory`."""

    def __init__(self, device: FakeDevice, port: str, on_data: Callable[[bytes], None]):
        self.device = device
        self.port = port
        self.on_data = on_data
        self.connected = False

    def open(self) -> None:
        if self.port in self.device.unavailable:
            raise PortUnavailableError(f"Could not open serial port {self.port!r}")
        self.device.opened.append(self.port)
        self.connected = True

    def close(self) -> None:
        self.connected = False

    def write(self, data: bytes) -> int:
        self.device.commands.append((self.port, bytes(data)))
        reply = self.device.respond(self.port, bytes(data))
        if reply:
            chunks = self.device.split(reply)
            if self.device.threaded:
                threading.Thread(target=self._deliver, args=(chunks,), daemon=True).start()
            else:
                for chunk in chunks:
                    self.on_data(chunk)
        return len(data)

    def _deliver(self, chunks: list[bytes]) -> None:
        for chunk in chunks:
            time.sleep(self.device.delay)
            self.on_data(chunk)


class FakeDevice:
    """Answers each written command with the raw bytes ``respond`` returns.

    ``respond(port, command)`` returns the full reply (length prefix
    included) or None for silence. Replies are cut into ``chunk_size``
    pieces and delivered either inside ``write`` or from a separate thread.
    """

    def __init__(
        self,
        respond: Callable[[str, bytes], bytes | None],
        *,
        chunk_size: int | None = None,
        threaded: bool = False,
        delay: float = 0.001,
        unavailable: tuple[str, ...] = (),
    ) -> None:
        self.respond = respond
        self.chunk_size = chunk_size
        self.threaded = threaded
        self.delay = delay
        self.unavailable = unavailable
        self.commands: list[tuple[str, bytes]] = []
        self.opened: list[str] = []

    def split(self, data: bytes) -> list[bytes]:
        if not self.chunk_size:
            return [data]
        return [
            data[i : i + self.chunk_size] for i in range(0, len(data), self.chunk_size)
        ]

    def factory(self, port: str, on_data: Callable[[bytes], None], config=None) -> FakeTransport:
        return FakeTransport(self, port, on_data)


@pytest.fixture
def fast_timeouts(monkeypatch):
    """Shrink the dumper's wait bounds so timeout tests stay quick."""
    monkeypatch.setattr("megadumper_mcp.dumper.READ_TIMEOUT_MS", 100)
    monkeypatch.setattr("megadumper_mcp.dumper.HEADER_TIMEOUT_MS", 100)
    monkeypatch.setattr("megadumper_mcp.dumper.DUMP_IDLE_TIMEOUT_MS", 100)
