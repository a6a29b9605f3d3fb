"""
Thermal Controller Simulator
============================

Simulated PM8-style thermal controller speaking Modbus RTU, plus a
polling client.

Author: Thermal Controller Simulator contributors
Date: January 2026
License: MIT
"""

__version__ = "1.0.0"
