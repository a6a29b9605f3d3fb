"""
Modbus Protocol Encoding/Decoding
==================================

Data conversion utilities for the controller's register encodings.

This module handles ONLY data format conversion:
- Python floats ↔ scaled x10 integer registers
- Python floats ↔ float32 register pairs (IEEE 754, high word first)

No protocol logic, no range validation. Scaled values wrap modulo 2**16
exactly as the controller firmware does: 6553.6 °C reads back as 0.0.

Author: Thermal Controller Simulator contributors
Date: January 2026
License: MIT
"""

import math
import struct
from typing import Sequence, Tuple

SCALE_FACTOR = 10.0
WORD_MASK = 0xFFFF


class ModbusEncoder:
    """
    Encoder for converting Python values to Modbus register format.

    Byte Order: Big-endian (network byte order), high word first.
    """

    @staticmethod
    def float32_to_registers(value: float) -> Tuple[int, int]:
        """
        Convert Python float to two 16-bit Modbus registers.

        Uses IEEE 754 single-precision (32-bit) format.

        Args:
            value: Python float

        Returns:
            Tuple of two 16-bit register values (high word, low word)

        Example:
            >>> ModbusEncoder.float32_to_registers(22.1)
            (16816, 52429)
        """
        # Pack as big-endian IEEE 754 single precision
        packed = struct.pack(">f", value)

        # Unpack as two unsigned 16-bit integers
        high, low = struct.unpack(">HH", packed)

        return high, low

    @staticmethod
    def scaled_to_register(value: float, scale: float = SCALE_FACTOR) -> int:
        """
        Convert engineering value to a scaled 16-bit register.

        Rounds half away from zero (65.25 -> 653), then truncates to
        16 bits with no overflow check.

        Example:
            >>> ModbusEncoder.scaled_to_register(65.0)
            650
        """
        scaled = value * scale
        rounded = math.floor(abs(scaled) + 0.5)
        return int(math.copysign(rounded, scaled)) & WORD_MASK


class ModbusDecoder:
    """
    Decoder for converting Modbus register format to Python values.

    Performs the inverse operations of ModbusEncoder.
    """

    @staticmethod
    def registers_to_float32(high: int, low: int) -> float:
        """
        Convert two 16-bit Modbus registers to Python float.

        Args:
            high: High 16-bit register
            low: Low 16-bit register

        Returns:
            Python float (IEEE 754 single precision)
        """
        # Pack as two unsigned 16-bit integers
        packed = struct.pack(">HH", high & WORD_MASK, low & WORD_MASK)

        # Unpack as big-endian IEEE 754 single precision
        (result,) = struct.unpack(">f", packed)

        return result

    @staticmethod
    def register_to_scaled(value: int, scale: float = SCALE_FACTOR) -> float:
        """Convert a scaled 16-bit register to its engineering value."""
        return (value & WORD_MASK) / scale

    @staticmethod
    def words_to_float32(words: Sequence[int]) -> float:
        """
        Decode a float32 from a register read of exactly two words.

        Raises:
            ValueError: If the read did not return exactly two words
        """
        if len(words) != 2:
            raise ValueError(f"float32 needs exactly 2 registers, got {len(words)}")
        return ModbusDecoder.registers_to_float32(words[0], words[1])
