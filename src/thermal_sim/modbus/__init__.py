"""
Modbus Interface Package
=========================

Modbus RTU protocol adapter for the simulated thermal controller.

This package provides:
- Register mapping (aliased scaled/float32 registers)
- Data encoding/decoding
- Request handling against the shared device state
- Modbus RTU server and polling client

It does NOT:
- Implement framing or CRC (pymodbus does)
- Implement the heating/cooling model (see ``thermal_sim.core``)
- Validate written setpoints beyond the register encoding

Components:
- register_map.py: Address table and register read/write
- protocols.py: Data encoding/decoding
- handler.py: Request dispatch under the state lock
- slave.py: Modbus RTU server
- transport.py: Serial and loopback client transports
- client.py: Polling client

Usage Example:
>>> from thermal_sim.core import DeviceState
>>> from thermal_sim.modbus import RequestHandler, LoopbackTransport, PollingClient
>>>
>>> handler = RequestHandler(DeviceState())
>>> client = PollingClient(LoopbackTransport(handler))
>>> reading = client.poll_once()

Architecture:

┌─────────────────┐
│  PollingClient  │  Operator console
└────────┬────────┘
         │ Modbus RTU (serial)
┌────────▼────────┐
│  ModbusSlave    │  Protocol adapter (pymodbus)
└────────┬────────┘
         │
┌────────▼────────┐
│ RequestHandler  │  Serialized register access
└────────┬────────┘
         │
┌────────▼────────┐
│  DeviceState    │◄── PhysicsUpdater
└─────────────────┘

Dependencies:
- pymodbus: Python Modbus library
  Install: pip install "pymodbus[serial]"

Author: Thermal Controller Simulator contributors
Date: January 2026
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Thermal Controller Simulator contributors"

from .register_map import Encoding, Quantity, RegisterDefinition, ThermalRegisterMap

from .protocols import ModbusEncoder, ModbusDecoder

from .handler import (
    ModbusRequest,
    ReadHoldingRegisters,
    WriteSingleRegister,
    WriteMultipleRegisters,
    RequestHandler,
    UnsupportedOperationError,
)

from .transport import TransportError, SerialTransport, LoopbackTransport

from .slave import ModbusSlave, ModbusServerConfig, ThermalDeviceContext

from .client import ClientConfig, PollingClient, Reading, format_header, format_reading

__all__ = [
    # Register mapping
    "Encoding",
    "Quantity",
    "RegisterDefinition",
    "ThermalRegisterMap",
    # Encoding/decoding
    "ModbusEncoder",
    "ModbusDecoder",
    # Request handling
    "ModbusRequest",
    "ReadHoldingRegisters",
    "WriteSingleRegister",
    "WriteMultipleRegisters",
    "RequestHandler",
    "UnsupportedOperationError",
    # Transports
    "TransportError",
    "SerialTransport",
    "LoopbackTransport",
    # Server
    "ModbusSlave",
    "ModbusServerConfig",
    "ThermalDeviceContext",
    # Client
    "ClientConfig",
    "PollingClient",
    "Reading",
    "format_header",
    "format_reading",
]
