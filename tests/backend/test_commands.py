"""Tests for SIP command encoding and response decoding."""

from datetime import datetime

import pytest

from rainbird_stick.protocol.commands import StickCommand, build_tunnel_params
from rainbird_stick.protocol.constants import UNKNOWN_MODEL, lookup_model
from rainbird_stick.protocol.exceptions import StickCommandRejected, StickProtocolError
from rainbird_stick.protocol.responses import parse_hex, safe_parse_hex
from rainbird_stick.protocol.stick_types import CommandResult


COMBINED_STATE = "CC0A1E200977E80000000200FA001405"


class TestEncoding:
    def test_run_program(self):
        assert StickCommand.MANUALLY_RUN_PROGRAM.encode(1) == "3801"

    def test_run_station(self):
        assert StickCommand.MANUALLY_RUN_STATION.encode(5, 10) == "3900050A"

    def test_stop(self):
        assert StickCommand.STOP_IRRIGATION.encode() == "40"

    def test_schedule_subcommands(self):
        assert StickCommand.RETRIEVE_SCHEDULE.encode(0) == "200000"
        assert StickCommand.RETRIEVE_SCHEDULE.encode(0x61) == "200061"
        assert StickCommand.RETRIEVE_SCHEDULE.encode(0x82) == "200082"

    def test_missing_fixed_arguments_are_zero(self):
        assert StickCommand.RETRIEVE_SCHEDULE.encode() == "200000"

    def test_too_many_arguments(self):
        with pytest.raises(ValueError):
            StickCommand.MANUALLY_RUN_STATION.encode(1, 2, 3)

    def test_simple_commands(self):
        assert StickCommand.MODEL_AND_VERSION.encode() == "02"
        assert StickCommand.AVAILABLE_STATIONS.encode(0) == "0300"
        assert StickCommand.COMBINED_CONTROLLER_STATE.encode() == "4C"
        assert StickCommand.CONTROLLER_FIRMWARE_VERSION.encode() == "0B"

    def test_tunnel_params_carry_declared_length(self):
        assert build_tunnel_params(StickCommand.MANUALLY_RUN_STATION, 5, 10) == {
            "data": "3900050A",
            "length": 4,
        }
        assert build_tunnel_params(StickCommand.RETRIEVE_SCHEDULE, 0)["length"] == 3
        assert build_tunnel_params(StickCommand.STOP_IRRIGATION)["length"] == 1

    def test_command_echo(self):
        assert StickCommand.MANUALLY_RUN_STATION.command_echo == 0x39
        assert StickCommand.STOP_IRRIGATION.command_echo == 0x40


class TestHexFields:
    def test_parse(self):
        assert parse_hex("CC0A1E", 2, 2) == 0x0A

    def test_truncated(self):
        with pytest.raises(StickProtocolError):
            parse_hex("CC0A", 2, 4)

    def test_invalid(self):
        with pytest.raises(StickProtocolError):
            parse_hex("CCZZ", 2, 2)

    def test_safe_parse_defaults_to_zero(self):
        assert safe_parse_hex("CCZZ", 2, 2) == 0
        assert safe_parse_hex("CC", 2, 2) == 0


class TestAvailableStations:
    def test_six_zones(self):
        stations = StickCommand.AVAILABLE_STATIONS.decode("83003F000000")
        assert stations.active_zones == frozenset({1, 2, 3, 4, 5, 6})
        assert stations.slot_count == 32

    def test_short_mask(self):
        stations = StickCommand.AVAILABLE_STATIONS.decode("83003F")
        assert stations.active_zones == frozenset({1, 2, 3, 4, 5, 6})
        assert stations.slot_count == 8

    def test_empty_mask(self):
        stations = StickCommand.AVAILABLE_STATIONS.decode("8300")
        assert stations.active_zones == frozenset()
        assert stations.slot_count == 0

    def test_page_offsets_zone_numbers(self):
        stations = StickCommand.AVAILABLE_STATIONS.decode("830101")
        assert stations.active_zones == frozenset({9})

    def test_second_mask_byte(self):
        stations = StickCommand.AVAILABLE_STATIONS.decode("830000FF")
        assert stations.active_zones == frozenset(range(9, 17))

    def test_too_short(self):
        with pytest.raises(StickProtocolError):
            StickCommand.AVAILABLE_STATIONS.decode("83")

    def test_wrong_prefix(self):
        with pytest.raises(StickProtocolError):
            StickCommand.AVAILABLE_STATIONS.decode("CC003F")

    def test_nak_is_rejection(self):
        with pytest.raises(StickCommandRejected) as excinfo:
            StickCommand.AVAILABLE_STATIONS.decode("000302")
        assert excinfo.value.command_name == "AVAILABLE_STATIONS"
        assert "rejected" in str(excinfo.value)


class TestCombinedState:
    def test_decode(self):
        state = StickCommand.COMBINED_CONTROLLER_STATE.decode(COMBINED_STATE)
        assert state.seasonal_adjust == 250
        assert state.remaining_runtime == 20
        assert state.active_station == 5
        assert state.delay_setting == 0
        assert state.sensor_state == 0
        assert state.irrigation_state == 2
        assert state.controller_time == datetime(2024, 7, 9, 10, 30, 32)

    def test_impossible_date_falls_back_to_epoch(self):
        # February 31st
        state = StickCommand.COMBINED_CONTROLLER_STATE.decode("CC0A1E201F27E80000000200FA001405")
        assert state.controller_time == datetime(1970, 1, 1)

    def test_fields_are_clamped(self):
        # hour 0x20 = 32, month 0 -> 23:.., January
        state = StickCommand.COMBINED_CONTROLLER_STATE.decode("CC201E200907E80000000200FA001405")
        assert state.controller_time == datetime(2024, 1, 9, 23, 30, 32)

    def test_too_short(self):
        with pytest.raises(StickProtocolError):
            StickCommand.COMBINED_CONTROLLER_STATE.decode(COMBINED_STATE[:-2])


class TestModelAndFirmware:
    def test_model_and_version(self):
        model = StickCommand.MODEL_AND_VERSION.decode("8200030209")
        assert model.model_id == 0x0003
        assert model.protocol_major == 2
        assert model.protocol_minor == 9
        assert model.model_code == "ESP_RZXe"

    def test_unknown_model(self):
        model = StickCommand.MODEL_AND_VERSION.decode("82FFFF0100")
        assert model.model_info == UNKNOWN_MODEL
        assert model.model_name == "Unknown"
        assert lookup_model(0xFFFF) == UNKNOWN_MODEL

    def test_model_too_short(self):
        with pytest.raises(StickProtocolError):
            StickCommand.MODEL_AND_VERSION.decode("820003")

    def test_firmware_version(self):
        firmware = StickCommand.CONTROLLER_FIRMWARE_VERSION.decode("8B01020003")
        assert firmware.version == "1.2.3"
        assert str(firmware) == "1.2.3"


class TestCommandResult:
    def test_ack(self):
        result = StickCommand.MANUALLY_RUN_PROGRAM.decode("0138")
        assert result == CommandResult(success=True, command_echo=0x38)

    def test_nak_with_code(self):
        result = StickCommand.MANUALLY_RUN_STATION.decode("003902")
        assert not result.success
        assert result.command_echo == 0x39
        assert result.error_code == 2

    def test_nak_without_code(self):
        result = StickCommand.STOP_IRRIGATION.decode("0040")
        assert not result.success
        assert result.command_echo == 0x40
        assert result.error_code is None

    def test_truncated_reports_request_opcode(self):
        result = StickCommand.MANUALLY_RUN_STATION.decode("01")
        assert result == CommandResult(success=False, command_echo=0x39)

    def test_unexpected_prefix(self):
        result = StickCommand.STOP_IRRIGATION.decode("CC00")
        assert result == CommandResult(success=False, command_echo=0x40)


class TestScheduleSegment:
    def test_passthrough(self):
        assert StickCommand.RETRIEVE_SCHEDULE.decode("A0000000000400") == "A0000000000400"

    def test_rejected(self):
        with pytest.raises(StickCommandRejected):
            StickCommand.RETRIEVE_SCHEDULE.decode("002001")
