"""
Modbus Request Handler
======================

Serializes protocol requests against the shared device state.

Each request holds ``DeviceState.access()`` for its entire read or
write against the register map, so a float32 pair is always encoded
from one self-consistent process value and a setpoint write can never
be lost to a concurrent physics tick.

Supported function codes:
- 03: Read Holding Registers
- 06: Write Single Register
- 16: Write Multiple Registers

Anything else raises ``UnsupportedOperationError``.

Author: Thermal Controller Simulator contributors
Date: January 2026
License: MIT
"""

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from ..core import DeviceState
from .register_map import ThermalRegisterMap

logger = logging.getLogger(__name__)

READ_HOLDING_REGISTERS = 3
WRITE_SINGLE_REGISTER = 6
WRITE_MULTIPLE_REGISTERS = 16


class UnsupportedOperationError(Exception):
    """Raised for function codes the simulated controller does not implement."""

    def __init__(self, function_code: int):
        self.function_code = function_code
        super().__init__(f"Function code {function_code} not supported by simulator")


@dataclass(frozen=True)
class ModbusRequest:
    """Decoded request of any function code."""

    function_code: int
    address: int = 0


@dataclass(frozen=True)
class ReadHoldingRegisters(ModbusRequest):
    function_code: int = field(default=READ_HOLDING_REGISTERS, init=False)
    count: int = 1


@dataclass(frozen=True)
class WriteSingleRegister(ModbusRequest):
    function_code: int = field(default=WRITE_SINGLE_REGISTER, init=False)
    value: int = 0


@dataclass(frozen=True)
class WriteMultipleRegisters(ModbusRequest):
    function_code: int = field(default=WRITE_MULTIPLE_REGISTERS, init=False)
    values: Tuple[int, ...] = ()


@dataclass(frozen=True)
class ReadHoldingResponse:
    registers: List[int]


@dataclass(frozen=True)
class WriteSingleResponse:
    address: int
    value: int


@dataclass(frozen=True)
class WriteMultipleResponse:
    address: int
    count: int


class RequestHandler:
    """
    Stateless per-request dispatcher onto the register map.

    >>> handler = RequestHandler(DeviceState())
    >>> handler.handle(ReadHoldingRegisters(address=2322, count=1)).registers
    [500]
    """

    def __init__(self, state: DeviceState, register_map: ThermalRegisterMap = None):
        self.state = state
        self.register_map = register_map or ThermalRegisterMap()

        self._dispatch = {
            READ_HOLDING_REGISTERS: self._read_holding,
            WRITE_SINGLE_REGISTER: self._write_single,
            WRITE_MULTIPLE_REGISTERS: self._write_multiple,
        }

    def handle(self, request: ModbusRequest):
        """
        Execute one decoded request.

        Raises:
            UnsupportedOperationError: For any function code other than 3, 6, 16
        """
        method = self._dispatch.get(request.function_code)
        if method is None:
            logger.warning(f"Rejected unsupported function code {request.function_code}")
            raise UnsupportedOperationError(request.function_code)
        return method(request)

    def _read_holding(self, request: ReadHoldingRegisters) -> ReadHoldingResponse:
        with self.state.access() as s:
            registers = self.register_map.read(s, request.address, request.count)
        return ReadHoldingResponse(registers=registers)

    def _write_single(self, request: WriteSingleRegister) -> WriteSingleResponse:
        with self.state.access() as s:
            changed = self.register_map.write(s, request.address, [request.value])
            setpoint = s.setpoint

        if changed:
            logger.info(f"Setpoint changed to {setpoint:.1f}°C")
        return WriteSingleResponse(address=request.address, value=request.value)

    def _write_multiple(self, request: WriteMultipleRegisters) -> WriteMultipleResponse:
        with self.state.access() as s:
            changed = self.register_map.write(s, request.address, request.values)
            setpoint = s.setpoint

        if changed:
            logger.info(f"Multi-write setpoint updated to {setpoint:.1f}°C")
        return WriteMultipleResponse(
            address=request.address, count=len(request.values)
        )
