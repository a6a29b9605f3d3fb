"""
Thermal Controller Polling Client Entry Point
=============================================

Polls a PM8-style controller over Modbus RTU and prints one table row
per cycle. With ``--loopback`` the client runs against an in-process
simulated device instead of a serial port (testing mode).

Author: Thermal Controller Simulator contributors
Date: January 2026
"""

import argparse
import logging
import signal
import sys

from .core import DeviceState, PhysicsUpdater
from .modbus import (
    ClientConfig,
    LoopbackTransport,
    PollingClient,
    RequestHandler,
    SerialTransport,
    TransportError,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Watlow PM8 Modbus RTU Client")
    parser.add_argument(
        "-p", "--port", type=str, help="Serial port (e.g. COM5, /dev/pts/2)"
    )
    parser.add_argument("-b", "--baud", type=int, default=9600, help="Baud rate")
    parser.add_argument(
        "-u", "--unit-id", type=int, default=1, help="Modbus unit id (slave address)"
    )
    parser.add_argument(
        "--set-sp", type=float, default=None, help="Write this setpoint at startup"
    )
    parser.add_argument(
        "-i", "--interval", type=int, default=1000, help="Polling interval [ms]"
    )
    parser.add_argument(
        "--cycles", type=int, default=None, help="Stop after this many polls"
    )
    parser.add_argument(
        "--loopback",
        action="store_true",
        help="Poll an in-process simulated device (no serial port)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.port and not args.loopback:
        parser.error("--port is required unless --loopback is given")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    config = ClientConfig(
        port=args.port or "",
        baudrate=args.baud,
        unit_id=args.unit_id,
        setpoint=args.set_sp,
        interval_ms=args.interval,
        cycles=args.cycles,
    )
    try:
        config.validate()
    except ValueError as e:
        parser.error(str(e))

    physics = None
    if args.loopback:
        state = DeviceState()
        physics = PhysicsUpdater(state)
        physics.start()
        transport = LoopbackTransport(RequestHandler(state))
        print("--- Watlow PM8 Modbus Client (loopback) ---")
    else:
        transport = SerialTransport(
            config.port,
            baudrate=config.baudrate,
            unit_id=config.unit_id,
            timeout=config.timeout_sec,
        )
        print("--- Watlow PM8 Modbus Client ---")
        print(
            f"Connecting to: {config.port} @ {config.baudrate} baud "
            f"(Slave ID: {config.unit_id})"
        )

    try:
        transport.connect()
    except TransportError as e:
        logger.error(f"Connection failed: {e}")
        if physics:
            physics.stop()
        sys.exit(1)

    client = PollingClient(transport, config)

    def signal_handler(sig, frame):
        logger.info("Shutdown signal received. Stopping client...")
        client.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    print("\nStarting Logger (Ctrl+C to stop)...")
    try:
        client.run()
    finally:
        transport.close()
        if physics:
            physics.stop()


if __name__ == "__main__":
    main()
