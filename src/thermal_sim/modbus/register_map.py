"""
Modbus Register Map
===================

Defines the mapping between holding register addresses and the
controller's physical quantities, and performs register reads/writes
against a ``DeviceState``.

Address Aliasing:
- A quantity may be exposed at several addresses at once, each with its
  own encoding. The controller keeps a legacy range (100, 300) next to
  the standard PM8 range (7101, 2322, 360-361).

Register Encoding:
- scaled_int_x10: ``round(value * 10)`` truncated to 16 bits
- float32 pairs: IEEE 754 single precision, high word at the lower
  address. Reading the low word alone yields a meaningless word.

Permissive Policy:
- Unmapped addresses read as 0 and ignore writes
- Writes to read-only registers are silently accepted
- The mapper never raises for address or encoding reasons

Callers are responsible for holding ``DeviceState.access()`` around
``read()``/``write()``.

Author: Thermal Controller Simulator contributors
Date: January 2026
License: MIT
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .protocols import ModbusDecoder, ModbusEncoder

logger = logging.getLogger(__name__)


class Quantity(Enum):
    """Device state field exposed through a register."""

    PROCESS_VALUE = "process_value"
    SETPOINT = "setpoint"


class Encoding(Enum):
    """How a quantity is packed into a single 16-bit register."""

    SCALED_INT_X10 = "scaled_int_x10"
    FLOAT32_HIGH_WORD = "float32_high_word"
    FLOAT32_LOW_WORD = "float32_low_word"


@dataclass(frozen=True)
class RegisterDefinition:
    """
    Definition of a single holding register.

    Attributes:
        address: Register address (0-based protocol address)
        name: Human-readable identifier
        quantity: Device state field behind this register
        encoding: Word encoding of the quantity
        units: Physical units
        description: What this register represents
        writable: Whether writes update the device state
    """

    address: int
    name: str
    quantity: Quantity
    encoding: Encoding
    units: str = "°C"
    description: str = ""
    writable: bool = False

    def validate(self):
        """Validate register definition."""
        if self.address < 0 or self.address > 65535:
            raise ValueError(f"Register address {self.address} out of range [0, 65535]")

        if self.writable and self.encoding != Encoding.SCALED_INT_X10:
            raise ValueError(f"Register {self.name} is writable but not scaled_int_x10")


class ThermalRegisterMap:
    """
    Static register table of the simulated PM8 controller.

    Typical Use:
    >>> reg_map = ThermalRegisterMap()
    >>> with state.access() as s:
    ...     words = reg_map.read(s, 360, 2)
    """

    def __init__(self):
        """Initialize register map with the controller layout."""
        self.holding_registers: List[RegisterDefinition] = []

        self._define_process_value_registers()
        self._define_setpoint_registers()

        self._validate_all()

        self._by_address: Dict[int, RegisterDefinition] = {
            reg.address: reg for reg in self.holding_registers
        }

    def _define_process_value_registers(self):
        """Process value: two scaled aliases and one float32 pair."""
        self.holding_registers.extend(
            [
                RegisterDefinition(
                    address=100,
                    name="pv_legacy",
                    quantity=Quantity.PROCESS_VALUE,
                    encoding=Encoding.SCALED_INT_X10,
                    description="Process value, legacy range (x10)",
                ),
                RegisterDefinition(
                    address=7101,
                    name="pv",
                    quantity=Quantity.PROCESS_VALUE,
                    encoding=Encoding.SCALED_INT_X10,
                    description="Process value (x10)",
                ),
                RegisterDefinition(
                    address=360,
                    name="pv_float_high",
                    quantity=Quantity.PROCESS_VALUE,
                    encoding=Encoding.FLOAT32_HIGH_WORD,
                    description="Process value float32, high word",
                ),
                RegisterDefinition(
                    address=361,
                    name="pv_float_low",
                    quantity=Quantity.PROCESS_VALUE,
                    encoding=Encoding.FLOAT32_LOW_WORD,
                    description="Process value float32, low word",
                ),
            ]
        )

    def _define_setpoint_registers(self):
        """Setpoint: active and Setpoint 1, both scaled and writable."""
        self.holding_registers.extend(
            [
                RegisterDefinition(
                    address=300,
                    name="sp_active",
                    quantity=Quantity.SETPOINT,
                    encoding=Encoding.SCALED_INT_X10,
                    description="Active setpoint, legacy range (x10)",
                    writable=True,
                ),
                RegisterDefinition(
                    address=2322,
                    name="sp_1",
                    quantity=Quantity.SETPOINT,
                    encoding=Encoding.SCALED_INT_X10,
                    description="Setpoint 1 (x10)",
                    writable=True,
                ),
            ]
        )

    def _validate_all(self):
        """Validate all register definitions and check for conflicts."""
        for reg in self.holding_registers:
            reg.validate()

        seen: Dict[int, str] = {}
        for reg in self.holding_registers:
            if reg.address in seen:
                raise ValueError(
                    f"Address conflict: {reg.name} and {seen[reg.address]} "
                    f"both at {reg.address}"
                )
            seen[reg.address] = reg.name

        # Every float32 high word needs its low word right after it
        by_address = {reg.address: reg for reg in self.holding_registers}
        for reg in self.holding_registers:
            if reg.encoding != Encoding.FLOAT32_HIGH_WORD:
                continue
            low = by_address.get(reg.address + 1)
            if (
                low is None
                or low.encoding != Encoding.FLOAT32_LOW_WORD
                or low.quantity != reg.quantity
            ):
                raise ValueError(
                    f"float32 register {reg.name} at {reg.address} has no "
                    f"matching low word at {reg.address + 1}"
                )

    def get_register_by_address(self, address: int) -> Optional[RegisterDefinition]:
        """Find register definition by address, None if unmapped."""
        return self._by_address.get(address)

    def get_register_by_name(self, name: str) -> Optional[RegisterDefinition]:
        """Find register definition by name, None if unknown."""
        for reg in self.holding_registers:
            if reg.name == name:
                return reg
        return None

    def read_word(self, state, address: int) -> int:
        """
        Encode one register from the current state.

        Args:
            state: Object exposing ``process_value`` and ``setpoint``
            address: Register address

        Returns:
            16-bit register value, 0 for unmapped addresses
        """
        reg = self._by_address.get(address)
        if reg is None:
            return 0

        value = getattr(state, reg.quantity.value)

        if reg.encoding == Encoding.SCALED_INT_X10:
            return ModbusEncoder.scaled_to_register(value)

        high, low = ModbusEncoder.float32_to_registers(value)
        if reg.encoding == Encoding.FLOAT32_HIGH_WORD:
            return high
        return low

    def read(self, state, address: int, count: int) -> List[int]:
        """Encode ``count`` consecutive registers starting at ``address``."""
        return [self.read_word(state, address + i) for i in range(count)]

    def write(self, state, address: int, words: Sequence[int]) -> bool:
        """
        Apply a register write to the state.

        Only the first word is used, and only when ``address`` is a
        writable setpoint register. Everything else is accepted and ignored.

        Returns:
            True if the state changed
        """
        if not words:
            return False

        reg = self._by_address.get(address)
        if reg is None or not reg.writable:
            logger.debug(f"Ignoring write to non-writable register {address}")
            return False

        setattr(state, reg.quantity.value, ModbusDecoder.register_to_scaled(words[0]))
        return True

    def print_register_map(self):
        """Print complete register map for documentation."""
        print("=" * 80)
        print("MODBUS REGISTER MAP")
        print("=" * 80)

        print("\nHOLDING REGISTERS (FC 03 read, FC 06/16 write)")
        print("-" * 80)
        print(
            f"{'Address':<10} {'Name':<16} {'Encoding':<20} {'Access':<8} {'Description':<30}"
        )
        print("-" * 80)
        for reg in sorted(self.holding_registers, key=lambda r: r.address):
            access = "R/W" if reg.writable else "R"
            print(
                f"{reg.address:<10} {reg.name:<16} {reg.encoding.value:<20} "
                f"{access:<8} {reg.description:<30}"
            )

        print("\n" + "=" * 80)
