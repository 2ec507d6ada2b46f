"""MCP server entry point for the Mega Dumper.

Exposes the dumper operations as tools via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .dumper import MegaDumper, is_genuine
from .transport.serial_connection import list_ports as _list_ports
from .utils.byteswap import U32_MAX
from .worker import DumperWorker

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "megadumper",
    instructions="MCP server for the Mega Dumper cartridge reader",
)

# Global dumper state
_dumper: MegaDumper | None = None
_worker: DumperWorker | None = None


def _get_dumper() -> MegaDumper:
    """Get the dumper, raising if no port has been chosen yet."""
    if _dumper is None or not _dumper.port:
        raise RuntimeError(
            "No port selected. Use 'autodetect' or 'select_port' first."
        )
    return _dumper


def _get_worker() -> DumperWorker:
    global _worker
    dumper = _get_dumper()
    if _worker is None or _worker.dumper is not dumper:
        if _worker is not None:
            _worker.shutdown(wait=False)
        _worker = DumperWorker(dumper)
    return _worker


# ─── PORT TOOLS ───────────────────────────────────────────────────────

@mcp.tool()
def list_ports() -> dict[str, Any]:
    """List the serial ports present on this machine."""
    return {"ports": _list_ports()}


@mcp.tool()
def select_port(port: str) -> dict[str, Any]:
    """Use a specific serial port for subsequent operations.

    Args:
        port: Serial port name, e.g. '/dev/ttyUSB0' or 'COM3'.
    """
    global _dumper
    if not port:
        return {"error": "Port name must not be empty"}
    if _dumper is None:
        _dumper = MegaDumper(port)
    else:
        _dumper.port = port
    return {"port": port}


@mcp.tool()
def autodetect() -> dict[str, Any]:
    """Probe every serial port for a dumper and select the first one found."""
    global _dumper
    if _dumper is None:
        _dumper = MegaDumper()

    res = _dumper.autodetect()
    result = res.to_dict()
    if res.ok:
        result["port"] = res.result
    return result


# ─── DEVICE TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def get_version() -> dict[str, Any]:
    """Query the firmware version string of the selected dumper."""
    dumper = _get_dumper()
    version = dumper.get_version()
    if not version:
        return {"error": f"No response from {dumper.port}"}
    return {
        "port": dumper.port,
        "version": version,
        "genuine": is_genuine(version),
    }


@mcp.tool()
def get_header() -> dict[str, Any]:
    """Read the raw cartridge header bytes via the Info command."""
    res = _get_dumper().get_header()
    result = res.to_dict()
    if res.ok:
        result["size"] = len(res.result)
        result["header_hex"] = res.result.hex(" ")
    return result


@mcp.tool()
def dump(start: int = 0, end: int = 0) -> dict[str, Any]:
    """Dump cartridge memory.

    With start and end both 0, the cartridge header is read first and
    the whole ROM it declares is dumped.

    Args:
        start: First physical address (default 0).
        end: End physical address (default 0).
    """
    if not (0 <= start <= U32_MAX and 0 <= end <= U32_MAX):
        return {"error": f"Addresses must be 0-{U32_MAX:#x}"}
    if start > end:
        return {"error": f"Start 0x{start:X} is past end 0x{end:X}"}

    job = _get_worker().submit("dump", start, end)
    last = -1
    for event in job.events():
        if event.header is not None:
            logger.info("Cartridge header: %r", event.header)
        elif event.percent // 10 != last // 10:
            logger.info("Dump %s: %d%%", event.phase.value, event.percent)
        last = event.percent

    res = job.result()
    result = res.to_dict()
    if res.ok:
        result.update(res.result.to_dict())
    return result


# ─── RESOURCES ────────────────────────────────────────────────────────

@mcp.resource("megadumper://device/status")
def resource_device_status() -> str:
    """Selected port and whether a dumper has been configured."""
    port = _dumper.port if _dumper is not None else ""
    return json.dumps({"port": port, "selected": bool(port)}, indent=2)


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
