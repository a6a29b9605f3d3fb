# tests/conftest.py
"""Shared fixtures for the thermal controller simulator tests."""

import pytest

from thermal_sim.core import DeviceState, DeviceStateConfig, PhysicsConfig, PhysicsUpdater
from thermal_sim.modbus import LoopbackTransport, RequestHandler, ThermalRegisterMap


def no_jitter() -> float:
    return 0.0


@pytest.fixture
def state():
    """Device state at the controller's power-on values (pv=22.1, sp=50.0)."""
    return DeviceState()


@pytest.fixture
def make_state():
    """Factory for device states with custom initial values."""

    def _create(**kwargs):
        return DeviceState(DeviceStateConfig(**kwargs))

    return _create


@pytest.fixture
def register_map():
    return ThermalRegisterMap()


@pytest.fixture
def physics(state):
    """Physics updater with noise disabled so steps are deterministic."""
    return PhysicsUpdater(state, PhysicsConfig(), jitter=no_jitter)


@pytest.fixture
def handler(state, register_map):
    return RequestHandler(state, register_map)


@pytest.fixture
def loopback(handler):
    return LoopbackTransport(handler)
