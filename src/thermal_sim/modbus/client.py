"""
Modbus Polling Client
=====================

Polls the thermal controller on a fixed interval and decodes its
aliased registers into physical values.

Each cycle reads three registers independently:
- 7101 (1 word):  process value, scaled x10
- 360  (2 words): process value, float32 high/low
- 2322 (1 word):  setpoint, scaled x10

A failure on one read marks only that field as failed; the cycle always
completes and reports all three fields before sleeping.

Author: Thermal Controller Simulator contributors
Date: January 2026
License: MIT
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .protocols import ModbusDecoder, ModbusEncoder
from .transport import TransportError

logger = logging.getLogger(__name__)

PV_INT_ADDRESS = 7101
PV_FLOAT_ADDRESS = 360
SP_ADDRESS = 2322

TABLE_WIDTH = 65
FAILED = "ERR"


@dataclass
class ClientConfig:
    """Configuration for the polling client."""

    port: str = ""
    baudrate: int = 9600
    unit_id: int = 1
    setpoint: Optional[float] = None
    interval_ms: int = 1000
    timeout_sec: float = 1.0
    cycles: Optional[int] = None

    def validate(self) -> None:
        """Validate polling settings."""
        if self.baudrate <= 0:
            raise ValueError(f"Baud rate must be positive: {self.baudrate}")
        if not 1 <= self.unit_id <= 247:
            raise ValueError(f"Unit id {self.unit_id} out of range [1, 247]")
        if self.interval_ms <= 0:
            raise ValueError(f"Poll interval must be positive: {self.interval_ms}")
        if self.cycles is not None and self.cycles < 0:
            raise ValueError(f"Cycle count must be non-negative: {self.cycles}")


@dataclass(frozen=True)
class Reading:
    """
    One poll cycle. Any field is None if its read failed.

    Attributes:
        timestamp: Local time the cycle completed
        pv_int: Process value from the scaled register [°C]
        pv_float: Process value from the float32 pair [°C]
        setpoint: Setpoint from the scaled register [°C]
    """

    timestamp: datetime
    pv_int: Optional[float]
    pv_float: Optional[float]
    setpoint: Optional[float]


def format_header() -> str:
    return f"{'Timestamp':<25} | {'PV (Int)':<10} | {'PV (F32)':<10} | {'SP (Read)':<10}"


def _field(value: Optional[float], precision: int) -> str:
    return FAILED if value is None else f"{value:.{precision}f}"


def format_reading(reading: Reading) -> str:
    """Render one fixed-width table row."""
    return (
        f"{reading.timestamp.strftime('%Y-%m-%d %H:%M:%S'):<25} | "
        f"{_field(reading.pv_int, 1):<10} | "
        f"{_field(reading.pv_float, 4):<10} | "
        f"{_field(reading.setpoint, 1):<10}"
    )


class PollingClient:
    """
    Fixed-interval poller over any transport.

    Typical Use:
    >>> client = PollingClient(SerialTransport("/dev/ttyUSB1"), ClientConfig())
    >>> client.write_setpoint(65.0)
    >>> client.run()
    """

    def __init__(
        self,
        transport,
        config: Optional[ClientConfig] = None,
        output: Callable[[str], None] = print,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.transport = transport
        self.config = config or ClientConfig()
        self.config.validate()
        self.output = output
        self.clock = clock

        self._stop_requested = threading.Event()

    def write_setpoint(self, setpoint: float) -> bool:
        """
        Write a setpoint to the scaled Setpoint 1 register.

        Returns:
            True if the device acknowledged the write
        """
        logger.info(f">>> Writing setpoint: {setpoint:.1f}°C")
        word = ModbusEncoder.scaled_to_register(setpoint)

        try:
            self.transport.write_single(SP_ADDRESS, word)
        except TransportError as e:
            logger.error(f">>> Setpoint write failed: {e}")
            return False

        logger.info(">>> Setpoint write success")
        return True

    def _read(self, address: int, count: int, decode) -> Optional[float]:
        try:
            words = self.transport.read_holding(address, count)
            return decode(words)
        except (TransportError, ValueError, IndexError) as e:
            logger.error(f"Error reading register {address}: {e}")
            return None

    def poll_once(self) -> Reading:
        """Run one cycle of the three independent reads."""
        pv_int = self._read(
            PV_INT_ADDRESS, 1, lambda w: ModbusDecoder.register_to_scaled(w[0])
        )
        pv_float = self._read(PV_FLOAT_ADDRESS, 2, ModbusDecoder.words_to_float32)
        setpoint = self._read(
            SP_ADDRESS, 1, lambda w: ModbusDecoder.register_to_scaled(w[0])
        )

        return Reading(
            timestamp=self.clock(),
            pv_int=pv_int,
            pv_float=pv_float,
            setpoint=setpoint,
        )

    def run(self) -> int:
        """
        Poll until stopped or ``config.cycles`` cycles have run.

        Returns:
            Number of completed cycles
        """
        if self.config.setpoint is not None:
            self.write_setpoint(self.config.setpoint)

        self.output(format_header())
        self.output("-" * TABLE_WIDTH)

        interval = self.config.interval_ms / 1000.0
        completed = 0

        while not self._stop_requested.is_set():
            started = time.monotonic()

            reading = self.poll_once()
            self.output(format_reading(reading))
            completed += 1

            if self.config.cycles is not None and completed >= self.config.cycles:
                break

            self._stop_requested.wait(max(0.0, interval - (time.monotonic() - started)))

        return completed

    def stop(self):
        self._stop_requested.set()
