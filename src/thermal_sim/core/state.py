"""
Device State
============

Authoritative in-memory record of the simulated thermal controller.

The state is shared between the physics updater thread and the Modbus
request handler. Every access, read or write, goes through ``access()``,
which holds the state lock for the whole read-modify-write sequence so
that a multi-word register read never observes a half-applied tick.

Author: Thermal Controller Simulator contributors
Date: January 2026
License: MIT
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import numpy as np


def to_float32(value: float) -> float:
    """Round a Python float to the nearest IEEE 754 single-precision value."""
    return float(np.float32(value))


@dataclass
class DeviceStateConfig:
    """
    Initial conditions of the simulated controller.

    Attributes:
        process_value: Starting measurement [°C]
        setpoint: Starting target [°C]
        ambient: Passive cooling floor [°C]
    """

    process_value: float = 22.1
    setpoint: float = 50.0
    ambient: float = 22.0

    def validate(self) -> None:
        """Validate that all initial values are finite."""
        for name in ("process_value", "setpoint", "ambient"):
            value = getattr(self, name)
            if not np.isfinite(value):
                raise ValueError(f"Initial {name} must be finite: {value}")


@dataclass(frozen=True)
class StateSnapshot:
    """Consistent copy of the device state taken under the lock."""

    process_value: float
    setpoint: float
    ambient: float


class DeviceState:
    """
    Thread-safe container for process value, setpoint and ambient.

    The process value is always held at float32 precision so the float32
    register pair reproduces it bit for bit.

    Typical Use:
    >>> state = DeviceState()
    >>> with state.access() as s:
    ...     s.setpoint = 65.0
    >>> state.snapshot().setpoint
    65.0
    """

    def __init__(self, config: DeviceStateConfig = None):
        self.config = config or DeviceStateConfig()
        self.config.validate()

        self._process_value = to_float32(self.config.process_value)
        self.setpoint = float(self.config.setpoint)
        self.ambient = float(self.config.ambient)

        self._lock = threading.RLock()

    @property
    def process_value(self) -> float:
        return self._process_value

    @process_value.setter
    def process_value(self, value: float):
        self._process_value = to_float32(value)

    @contextmanager
    def access(self) -> Iterator["DeviceState"]:
        """Hold exclusive access to the state for the duration of the block."""
        with self._lock:
            yield self

    def snapshot(self) -> StateSnapshot:
        """Return a self-consistent copy of all fields."""
        with self._lock:
            return StateSnapshot(
                process_value=self._process_value,
                setpoint=self.setpoint,
                ambient=self.ambient,
            )

    def __repr__(self) -> str:
        snap = self.snapshot()
        return (
            f"DeviceState(pv={snap.process_value:.4f}, "
            f"sp={snap.setpoint:.1f}, ambient={snap.ambient:.1f})"
        )
