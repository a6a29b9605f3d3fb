"""
Modbus Client Transports
========================

Request/response transports used by the polling client.

Both transports expose the same three operations:
- read_holding(address, count)   -> list of 16-bit words
- write_single(address, word)    -> (address, word) echo
- write_multiple(address, words) -> (address, count) ack

Any failure (serial error, timeout, Modbus exception response) is
raised as ``TransportError``.

Transports:
- SerialTransport: Modbus RTU over a serial port (pymodbus, 8N1)
- LoopbackTransport: in-process, straight into a ``RequestHandler``

Author: Thermal Controller Simulator contributors
Date: January 2026
License: MIT
"""

import logging
from typing import List, Sequence, Tuple

import serial
from pymodbus import FramerType
from pymodbus.client import ModbusSerialClient
from pymodbus.exceptions import ModbusException

from .handler import (
    ReadHoldingRegisters,
    WriteMultipleRegisters,
    WriteSingleRegister,
)

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Link-level failure: port unavailable, timeout, or exception response."""


class SerialTransport:
    """
    Modbus RTU client transport.

    >>> transport = SerialTransport("/dev/ttyUSB0", baudrate=9600, unit_id=1)
    >>> transport.connect()
    >>> transport.read_holding(7101, 1)
    [221]
    """

    def __init__(
        self,
        port: str,
        baudrate: int = 9600,
        unit_id: int = 1,
        timeout: float = 1.0,
        client=None,
    ):
        self.port = port
        self.baudrate = baudrate
        self.unit_id = unit_id

        self.client = client or ModbusSerialClient(
            port=port,
            framer=FramerType.RTU,
            baudrate=baudrate,
            bytesize=8,
            parity="N",
            stopbits=1,
            timeout=timeout,
        )

    def connect(self):
        """
        Open the serial port.

        Raises:
            TransportError: If the port cannot be opened
        """
        if not self.client.connect():
            raise TransportError(f"Cannot open serial port {self.port}")
        logger.info(f"Connected to {self.port} @ {self.baudrate} baud")

    def close(self):
        self.client.close()

    def _call(self, what: str, func, *args, **kwargs):
        try:
            response = func(*args, device_id=self.unit_id, **kwargs)
        except (ModbusException, serial.SerialException, OSError) as e:
            raise TransportError(f"{what} failed: {e}") from e

        if response.isError():
            raise TransportError(f"{what} failed: {response}")
        return response

    def read_holding(self, address: int, count: int) -> List[int]:
        response = self._call(
            f"Read {count} register(s) at {address}",
            self.client.read_holding_registers,
            address,
            count=count,
        )
        return list(response.registers)

    def write_single(self, address: int, word: int) -> Tuple[int, int]:
        response = self._call(
            f"Write register {address}",
            self.client.write_register,
            address,
            word,
        )
        return response.address, word

    def write_multiple(self, address: int, words: Sequence[int]) -> Tuple[int, int]:
        response = self._call(
            f"Write {len(words)} register(s) at {address}",
            self.client.write_registers,
            address,
            list(words),
        )
        return response.address, response.count


class LoopbackTransport:
    """In-process transport talking directly to a ``RequestHandler``."""

    def __init__(self, handler):
        self.handler = handler

    def connect(self):
        pass

    def close(self):
        pass

    def read_holding(self, address: int, count: int) -> List[int]:
        response = self.handler.handle(ReadHoldingRegisters(address=address, count=count))
        return list(response.registers)

    def write_single(self, address: int, word: int) -> Tuple[int, int]:
        response = self.handler.handle(WriteSingleRegister(address=address, value=word))
        return response.address, response.value

    def write_multiple(self, address: int, words: Sequence[int]) -> Tuple[int, int]:
        response = self.handler.handle(
            WriteMultipleRegisters(address=address, values=tuple(words))
        )
        return response.address, response.count
