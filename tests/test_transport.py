# tests/test_transport.py
"""Tests for the serial and loopback client transports."""

import pytest
import serial
from pymodbus.exceptions import ModbusIOException

from thermal_sim.modbus import (
    ClientConfig,
    PollingClient,
    SerialTransport,
    TransportError,
)


class FakeResponse:
    def __init__(self, registers=None, address=0, count=0, error=False):
        self.registers = registers or []
        self.address = address
        self.count = count
        self._error = error

    def isError(self):
        return self._error

    def __str__(self):
        return "ExceptionResponse(dev_id=1, function_code=131, exception_code=2)"


class FakeModbusClient:
    """Records calls the way pymodbus' sync serial client receives them."""

    def __init__(self, connected=True, response=None, raises=None):
        self.connected = connected
        self.response = response or FakeResponse()
        self.raises = raises
        self.calls = []
        self.closed = False

    def connect(self):
        return self.connected

    def close(self):
        self.closed = True

    def _reply(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.raises:
            raise self.raises
        return self.response

    def read_holding_registers(self, address, *, count=1, device_id=1):
        return self._reply("read_holding_registers", address, count=count, device_id=device_id)

    def write_register(self, address, value, *, device_id=1):
        return self._reply("write_register", address, value, device_id=device_id)

    def write_registers(self, address, values, *, device_id=1):
        return self._reply("write_registers", address, values, device_id=device_id)


def make_transport(**kwargs):
    fake = FakeModbusClient(**kwargs)
    return SerialTransport("/dev/ttyUSB9", unit_id=7, client=fake), fake


# ================================================================
# SERIAL TRANSPORT
# ================================================================
class TestSerialTransport:
    """pymodbus client wrapper."""

    def test_read_holding_passes_unit_id_and_count(self):
        transport, fake = make_transport(response=FakeResponse(registers=[0x41B0, 0xCCCD]))

        assert transport.read_holding(360, 2) == [0x41B0, 0xCCCD]
        assert fake.calls == [
            ("read_holding_registers", (360,), {"count": 2, "device_id": 7})
        ]

    def test_write_single(self):
        transport, fake = make_transport(response=FakeResponse(address=2322))

        assert transport.write_single(2322, 650) == (2322, 650)
        assert fake.calls[0] == ("write_register", (2322, 650), {"device_id": 7})

    def test_write_multiple_ack(self):
        transport, fake = make_transport(response=FakeResponse(address=300, count=2))

        assert transport.write_multiple(300, (650, 1)) == (300, 2)
        assert fake.calls[0][1] == (300, [650, 1])

    def test_exception_response_raises_transport_error(self):
        transport, _ = make_transport(response=FakeResponse(error=True))

        with pytest.raises(TransportError, match="exception_code=2"):
            transport.read_holding(7101, 1)

    def test_link_failure_raises_transport_error(self):
        transport, _ = make_transport(raises=ModbusIOException("No response received"))

        with pytest.raises(TransportError, match="No response"):
            transport.write_single(2322, 650)

    def test_serial_driver_error_raises_transport_error(self):
        transport, _ = make_transport(
            raises=serial.SerialException(
                "device reports readiness to read but returned no data"
            )
        )

        with pytest.raises(TransportError, match="returned no data"):
            transport.read_holding(7101, 1)

    def test_os_error_raises_transport_error(self):
        transport, _ = make_transport(raises=OSError(5, "Input/output error"))

        with pytest.raises(TransportError, match="Input/output error"):
            transport.write_single(2322, 650)

    def test_connect_failure_raises_transport_error(self):
        transport, _ = make_transport(connected=False)

        with pytest.raises(TransportError, match="Cannot open serial port /dev/ttyUSB9"):
            transport.connect()

    def test_close(self):
        transport, fake = make_transport()
        transport.close()
        assert fake.closed

    def test_builds_rtu_client_by_default(self):
        transport = SerialTransport("/dev/ttyUSB9", baudrate=19200)
        assert transport.client is not None
        assert transport.baudrate == 19200


# ================================================================
# LOOPBACK TRANSPORT
# ================================================================
class TestLoopbackTransport:
    """In-process transport into the request handler."""

    def test_read(self, loopback):
        assert loopback.read_holding(2322, 1) == [500]

    def test_write_single_echo(self, loopback, state):
        assert loopback.write_single(2322, 650) == (2322, 650)
        assert state.snapshot().setpoint == 65.0

    def test_write_multiple_ack(self, loopback):
        assert loopback.write_multiple(300, [650, 0, 0]) == (300, 3)


# ================================================================
# POLLING OVER A DEAD SERIAL LINK
# ================================================================
class TestPollingOverDeadLink:
    """Unplugged adapter: every call fails at the OS level."""

    @pytest.fixture
    def client(self):
        transport, _ = make_transport(raises=OSError(5, "Input/output error"))
        lines = []
        config = ClientConfig(interval_ms=1, cycles=2)
        return PollingClient(transport, config, output=lines.append), lines

    def test_cycle_completes_with_all_fields_failed(self, client, caplog):
        poller, _ = client

        reading = poller.poll_once()

        assert (reading.pv_int, reading.pv_float, reading.setpoint) == (None, None, None)
        assert "Input/output error" in caplog.text

    def test_setpoint_write_reports_failure(self, client):
        poller, _ = client

        assert poller.write_setpoint(65.0) is False

    def test_loop_keeps_running(self, client):
        poller, lines = client

        assert poller.run() == 2
        assert all(" | ERR" in line for line in lines[2:])
