"""
Thermal Controller Simulator Entry Point
========================================

Runs the simulated PM8 controller on a serial port: physics updater in
a background thread, Modbus RTU server in another, main thread waiting
for Ctrl+C.

Author: Thermal Controller Simulator contributors
Date: January 2026
"""

import argparse
import logging
import signal
import sys
import time
from contextlib import suppress

from .core import DeviceState, PhysicsUpdater
from .modbus import ModbusServerConfig, ModbusSlave, RequestHandler, TransportError

logger = logging.getLogger(__name__)

# Global running flag for graceful shutdown
running = True


def signal_handler(sig, frame):
    """Handle Ctrl+C for clean shutdown."""
    global running
    logger.info("Shutdown signal received. Stopping simulator...")
    running = False


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Watlow PM8 Modbus RTU Simulator")
    parser.add_argument(
        "-p",
        "--port",
        type=str,
        required=True,
        help="Serial port (e.g. COM4, /dev/ttyUSB0, or a virtual pts)",
    )
    parser.add_argument(
        "-b", "--baud", type=int, default=9600, help="Baud rate (PM8 default 9600)"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log every physics tick"
    )
    return parser


def print_banner(config: ModbusServerConfig, handler: RequestHandler):
    print("--- Watlow PM8 RTU Simulator ---")
    print(f"Listening on: {config.port} @ {config.baudrate} baud")
    print("Available Registers:")
    print("  - Process Value (PV): 7101 (Int x10), 100 (Int x10), 360 (32-bit Float)")
    print("  - Setpoint (SP):      2322 (Int x10), 300 (Int x10)")
    print()
    handler.register_map.print_register_map()


def main(argv=None):
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        config = ModbusServerConfig(port=args.port, baudrate=args.baud)
        config.validate()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    state = DeviceState()
    physics = PhysicsUpdater(state)
    handler = RequestHandler(state)
    slave = ModbusSlave(handler, config)

    print_banner(config, handler)

    try:
        slave.start(blocking=False)
    except (TransportError, RuntimeError) as e:
        logger.error(f"Modbus server startup failed: {e}")
        sys.exit(1)

    physics.start()
    logger.info(f"Initial state: {state}")
    logger.info("Press Ctrl+C to stop gracefully")

    try:
        while running and slave.is_running:
            time.sleep(0.2)

        if running:
            logger.error("Modbus server exited unexpectedly")

    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")

    finally:
        logger.info("Shutting down...")
        physics.stop()
        with suppress(Exception):
            slave.stop()
        logger.info(f"Final state: {state}")
        logger.info("Simulator stopped cleanly")


if __name__ == "__main__":
    main()
