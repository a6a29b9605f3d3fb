# tests/test_register_map.py
"""Tests for the register table and the register read/write mapping.

Coverage:
- Static table layout and aliasing
- Table validation (conflicts, float32 pairing, writable encodings)
- Reads: scaled, float32 pairs, unmapped addresses
- Writes: scaled setpoint, read-only and unmapped registers, multi-word
"""

import struct

import pytest

from thermal_sim.modbus import (
    Encoding,
    ModbusDecoder,
    Quantity,
    RegisterDefinition,
    ThermalRegisterMap,
)


# ================================================================
# TABLE LAYOUT
# ================================================================
class TestRegisterTable:
    """Static layout of the controller's holding registers."""

    @pytest.mark.parametrize(
        "address,quantity,encoding",
        [
            (100, Quantity.PROCESS_VALUE, Encoding.SCALED_INT_X10),
            (7101, Quantity.PROCESS_VALUE, Encoding.SCALED_INT_X10),
            (360, Quantity.PROCESS_VALUE, Encoding.FLOAT32_HIGH_WORD),
            (361, Quantity.PROCESS_VALUE, Encoding.FLOAT32_LOW_WORD),
            (300, Quantity.SETPOINT, Encoding.SCALED_INT_X10),
            (2322, Quantity.SETPOINT, Encoding.SCALED_INT_X10),
        ],
    )
    def test_address_resolves_to_one_quantity_and_encoding(
        self, register_map, address, quantity, encoding
    ):
        reg = register_map.get_register_by_address(address)

        assert reg is not None
        assert reg.quantity == quantity
        assert reg.encoding == encoding

    def test_only_scaled_setpoints_are_writable(self, register_map):
        writable = {r.address for r in register_map.holding_registers if r.writable}
        assert writable == {300, 2322}

    def test_unmapped_address_has_no_definition(self, register_map):
        assert register_map.get_register_by_address(0) is None
        assert register_map.get_register_by_address(362) is None

    def test_lookup_by_name(self, register_map):
        assert register_map.get_register_by_name("sp_1").address == 2322
        assert register_map.get_register_by_name("nope") is None

    def test_print_register_map(self, register_map, capsys):
        register_map.print_register_map()

        out = capsys.readouterr().out
        assert "MODBUS REGISTER MAP" in out
        assert "7101" in out and "float32_high_word" in out


# ================================================================
# TABLE VALIDATION
# ================================================================
class TestRegisterTableValidation:
    """Broken tables are rejected at construction."""

    def _map_with(self, monkeypatch, extra):
        original = ThermalRegisterMap._define_setpoint_registers

        def patched(self):
            original(self)
            self.holding_registers.extend(extra)

        monkeypatch.setattr(ThermalRegisterMap, "_define_setpoint_registers", patched)
        return ThermalRegisterMap()

    def test_duplicate_address_rejected(self, monkeypatch):
        dup = RegisterDefinition(
            address=7101,
            name="pv_dup",
            quantity=Quantity.SETPOINT,
            encoding=Encoding.SCALED_INT_X10,
        )
        with pytest.raises(ValueError, match="Address conflict"):
            self._map_with(monkeypatch, [dup])

    def test_float_high_word_without_low_word_rejected(self, monkeypatch):
        orphan = RegisterDefinition(
            address=400,
            name="sp_float_high",
            quantity=Quantity.SETPOINT,
            encoding=Encoding.FLOAT32_HIGH_WORD,
        )
        with pytest.raises(ValueError, match="no matching low word"):
            self._map_with(monkeypatch, [orphan])

    def test_writable_float_register_rejected(self):
        reg = RegisterDefinition(
            address=400,
            name="bad",
            quantity=Quantity.SETPOINT,
            encoding=Encoding.FLOAT32_HIGH_WORD,
            writable=True,
        )
        with pytest.raises(ValueError, match="writable"):
            reg.validate()

    def test_address_out_of_range_rejected(self):
        reg = RegisterDefinition(
            address=70000,
            name="bad",
            quantity=Quantity.SETPOINT,
            encoding=Encoding.SCALED_INT_X10,
        )
        with pytest.raises(ValueError, match="out of range"):
            reg.validate()


# ================================================================
# READS
# ================================================================
class TestRegisterRead:
    """Register reads against the live state."""

    def test_scaled_aliases_agree(self, register_map, state):
        with state.access() as s:
            assert register_map.read(s, 7101, 1) == [221]
            assert register_map.read(s, 100, 1) == [221]
            assert register_map.read(s, 2322, 1) == [500]
            assert register_map.read(s, 300, 1) == [500]

    def test_float_pair_carries_bit_pattern(self, register_map, state):
        with state.access() as s:
            high, low = register_map.read(s, 360, 2)

        bits = struct.unpack(">I", struct.pack(">f", 22.1))[0]
        assert (high << 16) | low == bits

    def test_float_pair_reconstructs_process_value_exactly(self, register_map, state):
        with state.access() as s:
            s.process_value = 87.654321
            words = register_map.read(s, 360, 2)
            pv = s.process_value

        assert ModbusDecoder.words_to_float32(words) == pv

    def test_low_word_alone_is_just_the_low_half(self, register_map, state):
        with state.access() as s:
            assert register_map.read(s, 361, 1) == [0xCCCD]

    def test_unmapped_addresses_read_zero(self, register_map, state):
        with state.access() as s:
            assert register_map.read(s, 0, 3) == [0, 0, 0]
            assert register_map.read_word(s, 65535) == 0

    def test_range_read_resolves_each_address_independently(self, register_map, state):
        with state.access() as s:
            words = register_map.read(s, 359, 4)

        assert words[0] == 0
        assert words[1:3] == [0x41B0, 0xCCCD]
        assert words[3] == 0

    def test_scaled_read_wraps_above_6553_5(self, register_map, make_state):
        hot = make_state(process_value=6600.0)
        with hot.access() as s:
            assert register_map.read(s, 7101, 1) == [(66000) & 0xFFFF]

    def test_zero_count_reads_nothing(self, register_map, state):
        with state.access() as s:
            assert register_map.read(s, 7101, 0) == []


# ================================================================
# WRITES
# ================================================================
class TestRegisterWrite:
    """Register writes: permissive, setpoint-only."""

    @pytest.mark.parametrize("address", [300, 2322])
    def test_scaled_setpoint_write(self, register_map, state, address):
        with state.access() as s:
            assert register_map.write(s, address, [650]) is True

        assert state.snapshot().setpoint == 65.0

    def test_setpoint_round_trip_to_one_decimal(self, register_map, state):
        with state.access() as s:
            register_map.write(s, 2322, [int(round(37.46 * 10))])
            word = register_map.read(s, 2322, 1)[0]

        assert ModbusDecoder.register_to_scaled(word) == round(37.46 * 10) / 10.0

    @pytest.mark.parametrize("address", [7101, 100, 360, 361])
    def test_read_only_registers_ignore_writes(self, register_map, state, address):
        before = state.snapshot()
        with state.access() as s:
            assert register_map.write(s, address, [1234]) is False

        assert state.snapshot() == before

    def test_unmapped_write_leaves_state_unchanged(self, register_map, state):
        before = state.snapshot()
        with state.access() as s:
            assert register_map.write(s, 5000, [42]) is False

        assert state.snapshot() == before

    def test_multi_word_write_uses_first_word_only(self, register_map, state):
        with state.access() as s:
            register_map.write(s, 2322, [700, 800, 900])

        assert state.snapshot().setpoint == 70.0

    def test_multi_word_write_spanning_setpoint_is_ignored(self, register_map, state):
        # Starts at 2321 (unmapped); the word landing on 2322 is not applied
        with state.access() as s:
            register_map.write(s, 2321, [100, 700])

        assert state.snapshot().setpoint == 50.0

    def test_empty_write_is_ignored(self, register_map, state):
        with state.access() as s:
            assert register_map.write(s, 2322, []) is False

        assert state.snapshot().setpoint == 50.0
