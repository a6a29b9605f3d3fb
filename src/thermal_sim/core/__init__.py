"""
Thermal Controller Core Package
===============================

Device state and heating/cooling physics of the simulated controller.

This package provides:
- State: Thread-safe container for process value, setpoint and ambient
- Physics: Periodic updater with asymmetric heating/cooling and noise

USAGE EXAMPLE
============

```python
from thermal_sim.core import DeviceState, PhysicsUpdater

state = DeviceState()
physics = PhysicsUpdater(state)

physics.start()          # 200 ms ticks in a daemon thread
...
physics.stop()

print(state.snapshot())
```

WHAT THIS PACKAGE DOES NOT DO:
- NO Modbus register layout or encoding
- NO serial I/O
- NO control algorithm (this is a plant model, not a PID loop)

Author: Thermal Controller Simulator contributors
Date: January 2026
License: MIT
"""

from .state import DeviceState, DeviceStateConfig, StateSnapshot, to_float32
from .physics import PhysicsConfig, PhysicsUpdater, TimeSeededJitter

__all__ = [
    "DeviceState",
    "DeviceStateConfig",
    "StateSnapshot",
    "to_float32",
    "PhysicsConfig",
    "PhysicsUpdater",
    "TimeSeededJitter",
]
