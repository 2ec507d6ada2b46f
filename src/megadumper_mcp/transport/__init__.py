"""Serial transport."""

from .serial_connection import SerialConfig, SerialConnection, list_ports
