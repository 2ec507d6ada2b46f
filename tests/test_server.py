"""Tests for the MCP tool functions."""

from __future__ import annotations

import base64
import sys
from unittest.mock import MagicMock, patch

import pytest

from megadumper_mcp.dumper import MegaDumper
from megadumper_mcp.protocol.commands import ROM_HEADER_WINDOW, build_dump

from conftest import FakeDevice, frame

HEADER = (0x0).to_bytes(4, "big") + (0x1FFF).to_bytes(4, "big") + b"\x00" * 8
ROM = bytes(range(256)) * 4


def _respond(port: str, command: bytes) -> bytes | None:
    if port != "COM3":
        return None
    if command == b"v":
        return frame(b"GENDUMPER 0.9")
    if command == b"i":
        return frame(HEADER)
    if command == build_dump(*ROM_HEADER_WINDOW):
        return frame(HEADER)
    return frame(ROM)


def _get_server_module():
    """Import server module with FastMCP mocked to avoid init issues."""
    mock_fastmcp_cls = MagicMock()
    mock_fastmcp_instance = MagicMock()
    # Make the @mcp.tool() decorator a no-op that returns the function unchanged
    mock_fastmcp_instance.tool.return_value = lambda fn: fn
    mock_fastmcp_instance.resource.return_value = lambda fn: fn
    mock_fastmcp_cls.return_value = mock_fastmcp_instance

    with patch.dict(sys.modules, {}):
        with patch("mcp.server.fastmcp.FastMCP", mock_fastmcp_cls):
            # Remove cached server module so it re-imports with our mock
            sys.modules.pop("megadumper_mcp.server", None)
            import megadumper_mcp.server as server_mod

    return server_mod


@pytest.fixture
def server(monkeypatch):
    monkeypatch.setattr("megadumper_mcp.dumper.READ_TIMEOUT_MS", 100)
    server_mod = _get_server_module()
    device = FakeDevice(_respond, chunk_size=128, threaded=True)
    server_mod._dumper = MegaDumper(
        "COM3",
        transport_factory=device.factory,
        port_lister=lambda: ["COM1", "COM3"],
    )
    yield server_mod
    if server_mod._worker is not None:
        server_mod._worker.shutdown()


def test_tools_require_port():
    server = _get_server_module()
    with pytest.raises(RuntimeError):
        server.get_version()


def test_get_version(server):
    result = server.get_version()
    assert result == {"port": "COM3", "version": "GENDUMPER 0.9", "genuine": True}


def test_get_version_no_response(server):
    server.select_port("COM1")
    assert "error" in server.get_version()


def test_select_port_rejects_empty(server):
    assert "error" in server.select_port("")


def test_autodetect_selects_port(server):
    server._dumper.port = "COM1"
    result = server.autodetect()
    assert result["code"] == "OK"
    assert result["port"] == "COM3"
    assert server._dumper.port == "COM3"


def test_get_header(server):
    result = server.get_header()
    assert result["code"] == "OK"
    assert result["size"] == len(HEADER)
    assert bytes.fromhex(result["header_hex"]) == HEADER


def test_full_dump(server):
    result = server.dump()
    assert result["code"] == "OK"
    assert result["size"] == len(ROM)
    assert result["header"]["rom_end"] == "0x00001FFF"
    assert result["end"] == "0x00000FFF"
    assert base64.b64decode(result["data_base64"]) == ROM


def test_dump_reversed_range(server):
    result = server.dump(0x2000, 0x1000)
    assert "error" in result


def test_status_resource(server):
    assert '"port": "COM3"' in server.resource_device_status()


def test_switching_dumper_shuts_down_old_worker(server):
    """Replacing the dumper retires the worker bound to the old one."""
    old = server._get_worker()
    assert server._get_worker() is old
    with patch.object(old, "shutdown") as shutdown:
        server._dumper = MegaDumper("COM3", transport_factory=FakeDevice(_respond).factory)
        new = server._get_worker()
    shutdown.assert_called_once_with(wait=False)
    assert new is not old
    assert new.dumper is server._dumper
    old.shutdown()
