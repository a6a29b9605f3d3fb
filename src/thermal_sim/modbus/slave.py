"""
Modbus RTU Slave Server
=======================

Serial Modbus RTU server exposing the simulated controller.

pymodbus owns framing, CRC and the serial line. Decoded requests reach
``ThermalDeviceContext``, which forwards them to the ``RequestHandler``
instead of a static data block, so every read is computed from the live
device state.

Author: Thermal Controller Simulator contributors
Date: January 2026
License: MIT
"""

import asyncio
import threading
import logging
from typing import List, Optional
from dataclasses import dataclass
from contextlib import suppress

import serial
from pymodbus import FramerType, ModbusDeviceIdentification
from pymodbus.server import StartAsyncSerialServer, ServerAsyncStop
from pymodbus.datastore import ModbusBaseDeviceContext, ModbusServerContext

from .handler import (
    ModbusRequest,
    ReadHoldingRegisters,
    RequestHandler,
    WriteMultipleRegisters,
    WriteSingleRegister,
    READ_HOLDING_REGISTERS,
    WRITE_MULTIPLE_REGISTERS,
    WRITE_SINGLE_REGISTER,
)
from .transport import TransportError


@dataclass
class ModbusServerConfig:
    """Configuration for Modbus RTU server."""

    port: str = "/dev/ttyUSB0"
    baudrate: int = 9600
    bytesize: int = 8
    parity: str = "N"
    stopbits: int = 1
    unit_id: int = 1

    # Server identification
    vendor_name: str = "Thermal Controller Simulator"
    product_code: str = "PM8-SIM"
    product_name: str = "PM8 Thermal Controller Simulator"
    model_name: str = "Virtual PM8 v1.0"
    version: str = "1.0.0"

    # Timeouts
    startup_timeout_sec: float = 5.0
    shutdown_timeout_sec: float = 3.0

    def validate(self) -> None:
        """Validate serial settings."""
        if not self.port:
            raise ValueError("Serial port must be given")
        if self.baudrate <= 0:
            raise ValueError(f"Baud rate must be positive: {self.baudrate}")
        if not 1 <= self.unit_id <= 247:
            raise ValueError(f"Unit id {self.unit_id} out of range [1, 247]")


class ThermalDeviceContext(ModbusBaseDeviceContext):
    """
    pymodbus device context backed by the request handler.

    pymodbus builds the FC 06 echo by reading the register back after the
    write; that read returns the word that was just written.
    """

    def __init__(self, handler: RequestHandler):
        super().__init__()
        self.handler = handler
        self._last_single_write: Optional[WriteSingleRegister] = None

    def validate(self, func_code, address, count=1) -> bool:
        # Unmapped addresses are legal; they read as 0.
        return True

    def getValues(self, func_code, address, count=1) -> List[int]:
        if func_code == READ_HOLDING_REGISTERS:
            request = ReadHoldingRegisters(address=address, count=count)
            return self.handler.handle(request).registers

        if func_code == WRITE_SINGLE_REGISTER:
            echo = self._last_single_write
            if echo is not None and echo.address == address:
                return [echo.value]
            return [0] * count

        if func_code == WRITE_MULTIPLE_REGISTERS:
            return [0] * count

        return self.handler.handle(ModbusRequest(function_code=func_code, address=address))

    def setValues(self, func_code, address, values) -> None:
        if func_code == WRITE_SINGLE_REGISTER:
            request = WriteSingleRegister(address=address, value=values[0])
            self.handler.handle(request)
            self._last_single_write = request
        elif func_code == WRITE_MULTIPLE_REGISTERS:
            self.handler.handle(
                WriteMultipleRegisters(address=address, values=tuple(values))
            )
        else:
            self.handler.handle(ModbusRequest(function_code=func_code, address=address))

    async def async_getValues(self, func_code, address, count=1):
        return self.getValues(func_code, address, count)

    async def async_setValues(self, func_code, address, values):
        self.setValues(func_code, address, values)


def check_serial_port(config: ModbusServerConfig):
    """
    Open and close the configured port once.

    Raises:
        TransportError: If the port cannot be opened
    """
    try:
        with serial.Serial(
            port=config.port,
            baudrate=config.baudrate,
            bytesize=config.bytesize,
            parity=config.parity,
            stopbits=config.stopbits,
        ):
            pass
    except (serial.SerialException, ValueError) as e:
        raise TransportError(f"Cannot open serial port {config.port}: {e}") from e


class ModbusSlave:
    """
    Modbus RTU slave server for the simulated controller.

    The server answers every unit id on the link.
    """

    def __init__(
        self,
        handler: RequestHandler,
        config: Optional[ModbusServerConfig] = None,
    ):
        """Initialize Modbus slave server."""

        self.handler = handler
        self.config = config or ModbusServerConfig()
        self.config.validate()

        self.device_context = ThermalDeviceContext(handler)
        self.context = ModbusServerContext(devices=self.device_context, single=True)

        self.identity = ModbusDeviceIdentification()
        self.identity.VendorName = self.config.vendor_name
        self.identity.ProductCode = self.config.product_code
        self.identity.ProductName = self.config.product_name
        self.identity.ModelName = self.config.model_name
        self.identity.MajorMinorRevision = self.config.version

        # Lifecycle management
        self.server_thread: Optional[threading.Thread] = None
        self._event_loop: Optional[asyncio.AbstractEventLoop] = None

        # Synchronization
        self._running = threading.Event()
        self._server_ready = threading.Event()

        logging.info(
            f"Modbus slave initialized: {self.config.port} @ {self.config.baudrate} baud"
        )

    def start(self, blocking: bool = True):
        """
        Start Modbus server.

        Args:
            blocking: If True, block until server stops
                     If False, run in background thread

        Raises:
            TransportError: If the serial port cannot be opened
            RuntimeError: If the background server does not come up in time
        """
        if self._running.is_set():
            logging.warning("Modbus server already running")
            return

        check_serial_port(self.config)

        self._running.set()
        self._server_ready.clear()

        if blocking:
            self._run_server()
        else:
            self.server_thread = threading.Thread(
                target=self._run_server, daemon=True, name="ModbusRTUServer"
            )
            self.server_thread.start()

            if not self._server_ready.wait(timeout=self.config.startup_timeout_sec):
                self._running.clear()
                raise RuntimeError("Server startup timeout")

            logging.info(f"Modbus server started on {self.config.port}")

    def _run_server(self):
        """Run the async server in a private event loop."""
        loop = None
        try:
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            self._event_loop = loop

            loop.run_until_complete(self._async_run_server())

        except Exception as e:
            logging.error(f"Modbus server error: {type(e).__name__}: {e}")

        finally:
            self._running.clear()
            # Signal ready even on error (to unblock waiting threads)
            self._server_ready.set()

            if loop and not loop.is_closed():
                pending = asyncio.all_tasks(loop)
                for task in pending:
                    task.cancel()

                with suppress(Exception):
                    loop.run_until_complete(
                        asyncio.gather(*pending, return_exceptions=True)
                    )

                loop.close()

            self._event_loop = None

    async def _async_run_server(self):
        """Serve until ServerAsyncStop() is awaited."""
        self._server_ready.set()

        await StartAsyncSerialServer(
            context=self.context,
            identity=self.identity,
            framer=FramerType.RTU,
            port=self.config.port,
            baudrate=self.config.baudrate,
            bytesize=self.config.bytesize,
            parity=self.config.parity,
            stopbits=self.config.stopbits,
        )

    def stop(self):
        """Stop Modbus server (graceful shutdown)."""
        if not self._running.is_set():
            return

        self._running.clear()

        if self._event_loop and not self._event_loop.is_closed():
            future = asyncio.run_coroutine_threadsafe(ServerAsyncStop(), self._event_loop)
            try:
                future.result(timeout=self.config.shutdown_timeout_sec)
            except Exception as e:
                logging.warning(f"Server shutdown error: {type(e).__name__}")

        if self.server_thread and self.server_thread.is_alive():
            self.server_thread.join(timeout=self.config.shutdown_timeout_sec)

            if self.server_thread.is_alive():
                logging.warning("Server thread did not terminate cleanly")

        logging.info("Modbus server stopped")

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running.is_set()
