"""
Physics Updater
===============

Thermal inertia model for the simulated controller.

MODEL
=====

Each tick, under exclusive access to the device state:

    diff = setpoint - process_value

    diff > deadband          -> heating:  pv += heating_step   (fast)
    pv > ambient             -> cooling:  pv -= cooling_step   (slow)
    otherwise                -> no deterministic change

A small noise term centred on zero is then added to emulate sensor
noise. The noise generator is owned by the updater and never touches
request traffic.

Reference constants (per 200 ms tick):
- heating_step = 0.08 °C
- cooling_step = 0.02 °C
- deadband     = 0.05 °C
- jitter       = ±0.01 °C

Author: Thermal Controller Simulator contributors
Date: January 2026
License: MIT
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .state import DeviceState

logger = logging.getLogger(__name__)


@dataclass
class PhysicsConfig:
    """
    Parameters of the heating/cooling model.

    Attributes:
        period_sec: Tick period [s]
        heating_step: Process value increase per tick while heating [°C]
        cooling_step: Process value decrease per tick while cooling [°C]
        deadband: Minimum setpoint excess that triggers heating [°C]
        jitter_amplitude: Half-width of the uniform noise term [°C]
    """

    period_sec: float = 0.2
    heating_step: float = 0.08
    cooling_step: float = 0.02
    deadband: float = 0.05
    jitter_amplitude: float = 0.01

    def validate(self) -> None:
        """Validate physical consistency of parameters."""
        if self.period_sec <= 0:
            raise ValueError(f"Tick period must be positive: {self.period_sec}")
        if self.heating_step < 0 or self.cooling_step < 0:
            raise ValueError(
                f"Steps must be non-negative: heating={self.heating_step}, "
                f"cooling={self.cooling_step}"
            )
        if self.deadband < 0:
            raise ValueError(f"Deadband must be non-negative: {self.deadband}")
        if self.jitter_amplitude < 0:
            raise ValueError(
                f"Jitter amplitude must be non-negative: {self.jitter_amplitude}"
            )


class TimeSeededJitter:
    """
    Uniform noise source seeded from the wall clock.

    >>> jitter = TimeSeededJitter(amplitude=0.01)
    >>> -0.01 <= jitter() <= 0.01
    True
    """

    def __init__(self, amplitude: float = 0.01, seed: Optional[int] = None):
        self.amplitude = amplitude
        self.rng = np.random.default_rng(time.time_ns() if seed is None else seed)

    def __call__(self) -> float:
        if self.amplitude == 0.0:
            return 0.0
        return float(self.rng.uniform(-self.amplitude, self.amplitude))


class PhysicsUpdater:
    """
    Periodic process advancing the device state toward its setpoint.

    The only coupling to the rest of the system is the shared
    ``DeviceState``; the updater never observes protocol traffic.
    """

    def __init__(
        self,
        state: DeviceState,
        config: Optional[PhysicsConfig] = None,
        jitter: Optional[Callable[[], float]] = None,
    ):
        self.state = state
        self.config = config or PhysicsConfig()
        self.config.validate()
        self.jitter = jitter or TimeSeededJitter(self.config.jitter_amplitude)

        self.tick_count = 0
        self._thread: Optional[threading.Thread] = None
        self._stop_requested = threading.Event()

    def tick(self) -> float:
        """
        Advance the model by one step.

        Returns:
            Process value after the step
        """
        noise = self.jitter()

        with self.state.access() as s:
            diff = s.setpoint - s.process_value

            if diff > self.config.deadband:
                delta = self.config.heating_step
            elif s.process_value > s.ambient:
                delta = -self.config.cooling_step
            else:
                delta = 0.0

            s.process_value = s.process_value + delta + noise
            pv = s.process_value

        self.tick_count += 1
        logger.debug(f"tick={self.tick_count} pv={pv:.4f} delta={delta:+.2f}")
        return pv

    def run(self):
        """Tick on a fixed period until ``stop()`` is called."""
        next_tick = time.monotonic()
        while not self._stop_requested.is_set():
            self.tick()

            next_tick += self.config.period_sec
            sleep_time = next_tick - time.monotonic()
            if sleep_time <= 0:
                # Overran the period: restart the schedule from now.
                next_tick = time.monotonic()
                sleep_time = 0.0
            self._stop_requested.wait(sleep_time)

    def start(self):
        """Run the updater in a background daemon thread."""
        if self.is_running:
            logger.warning("Physics updater already running")
            return

        self._stop_requested.clear()
        self._thread = threading.Thread(
            target=self.run, daemon=True, name="PhysicsUpdater"
        )
        self._thread.start()
        logger.info(
            f"Physics updater started (period={self.config.period_sec * 1000:.0f} ms)"
        )

    def stop(self, timeout: float = 1.0):
        """Stop the background thread."""
        self._stop_requested.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Physics thread did not terminate cleanly")
        self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
