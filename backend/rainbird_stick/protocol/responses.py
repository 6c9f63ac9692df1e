"""Decoders for tunnelled SIP responses.

Responses are upper-case hex strings. Offsets below are hex character
offsets into the response, counting the 2-character response prefix.
Fixed-format fields fail hard on short or garbled data; only the station
bitmap tolerates bad hex (the field reads as zero).
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from .constants import ACK_PREFIX, NAK_PREFIX
from .exceptions import StickCommandRejected, StickProtocolError
from .stick_types import (
    AvailableStations,
    CombinedState,
    CommandResult,
    ControllerFirmwareVersion,
    ModelAndVersion,
)

if TYPE_CHECKING:
    from .commands import StickCommand

logger = logging.getLogger(__name__)

COMBINED_STATE_LENGTH = 32
MODEL_AND_VERSION_LENGTH = 10
FIRMWARE_VERSION_LENGTH = 10
AVAILABLE_STATIONS_MIN_LENGTH = 4
ACK_MIN_LENGTH = 4

EPOCH_FALLBACK = datetime(1970, 1, 1, 0, 0)


def parse_hex(data: str, position: int, length: int) -> int:
    """Parse a fixed-width hex field, raising StickProtocolError if absent or invalid."""
    end = position + length
    if position < 0 or end > len(data):
        raise StickProtocolError(
            f"Response {data!r} truncated: field at {position} needs {length} hex digits"
        )
    try:
        return int(data[position:end], 16)
    except ValueError as exc:
        raise StickProtocolError(f"Invalid hex field {data[position:end]!r} in {data!r}") from exc


def safe_parse_hex(data: str, position: int, length: int) -> int:
    """Parse a hex field, returning 0 instead of failing."""
    try:
        return parse_hex(data, position, length)
    except StickProtocolError:
        logger.debug("Unable to parse field at %d (len %d) from %s", position, length, data)
        return 0


def expect_prefix(data: str, command: "StickCommand") -> None:
    """Check the response prefix; a NAK prefix means the controller rejected the command."""
    if data.startswith(command.response_prefix):
        return
    if data.startswith(NAK_PREFIX):
        raise StickCommandRejected(command.name, data)
    raise StickProtocolError(f"Unexpected response {data} for command {command.name}")


def decode_available_stations(data: str, command: "StickCommand") -> AvailableStations:
    """Decode an Available Stations (83) response.

    Byte 1 is the page number, the rest is a bitmask. Bit b of mask byte k
    is zone page*8 + k*8 + b + 1.
    """
    expect_prefix(data, command)
    if len(data) < AVAILABLE_STATIONS_MIN_LENGTH:
        raise StickProtocolError(f"Available stations response too short: {data}")

    page = safe_parse_hex(data, 2, 2)
    mask = data[4:]
    active = set()
    position = page * 8
    for i in range(0, len(mask) - 1, 2):
        current = safe_parse_hex(mask, i, 2)
        for bit in range(8):
            if current & (1 << bit):
                active.add(position + bit + 1)
        position += 8
    return AvailableStations(active_zones=frozenset(active), slot_count=len(mask) * 4)


def decode_model_and_version(data: str, command: "StickCommand") -> ModelAndVersion:
    """Decode a Model & Version (82) response: model id [2,4], major [6,2], minor [8,2]."""
    expect_prefix(data, command)
    if len(data) < MODEL_AND_VERSION_LENGTH:
        raise StickProtocolError(f"Model and version response too short: {data}")
    return ModelAndVersion(
        model_id=parse_hex(data, 2, 4),
        protocol_major=parse_hex(data, 6, 2),
        protocol_minor=parse_hex(data, 8, 2),
    )


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def controller_time(year: int, month: int, day: int, hour: int, minute: int, second: int) -> datetime:
    """Build the controller clock, clamping each field; impossible dates give the epoch."""
    try:
        return datetime(
            year,
            _clamp(month, 1, 12),
            _clamp(day, 1, 31),
            _clamp(hour, 0, 23),
            _clamp(minute, 0, 59),
            _clamp(second, 0, 59),
        )
    except ValueError:
        logger.debug(
            "Invalid controller time %d/%d/%d %d:%d:%d",
            month, day, year, hour, minute, second,
        )
        return EPOCH_FALLBACK


def decode_combined_controller_state(data: str, command: "StickCommand") -> CombinedState:
    """Decode a Combined Controller State (CC) response (32 hex digits).

    Layout:
    2-3:   hour
    4-5:   minute
    6-7:   second
    8-9:   day
    10:    month
    11-13: year
    14-17: rain delay setting (days)
    18-19: sensor state
    20-21: irrigation state
    22-25: seasonal adjust (percent)
    26-29: remaining runtime (seconds)
    30-31: active station
    """
    expect_prefix(data, command)
    if len(data) < COMBINED_STATE_LENGTH:
        raise StickProtocolError(f"Combined controller state response too short: {data}")
    return CombinedState(
        delay_setting=parse_hex(data, 14, 4),
        sensor_state=parse_hex(data, 18, 2),
        irrigation_state=parse_hex(data, 20, 2),
        seasonal_adjust=parse_hex(data, 22, 4),
        remaining_runtime=parse_hex(data, 26, 4),
        active_station=parse_hex(data, 30, 2),
        controller_time=controller_time(
            year=parse_hex(data, 11, 3),
            month=parse_hex(data, 10, 1),
            day=parse_hex(data, 8, 2),
            hour=parse_hex(data, 2, 2),
            minute=parse_hex(data, 4, 2),
            second=parse_hex(data, 6, 2),
        ),
    )


def decode_controller_firmware_version(data: str, command: "StickCommand") -> ControllerFirmwareVersion:
    """Decode a Controller Firmware Version (8B) response: major [2,2], minor [4,2], patch [6,4]."""
    expect_prefix(data, command)
    if len(data) < FIRMWARE_VERSION_LENGTH:
        raise StickProtocolError(f"Controller firmware response too short: {data}")
    return ControllerFirmwareVersion(
        major=parse_hex(data, 2, 2),
        minor=parse_hex(data, 4, 2),
        patch=parse_hex(data, 6, 4),
    )


def decode_command_result(data: str, command: "StickCommand") -> CommandResult:
    """Decode an ACK (01 echo) or NAK (00 echo code) response.

    Anything else, including a response shorter than 4 hex digits, is a
    failure carrying the request opcode.
    """
    if len(data) < ACK_MIN_LENGTH:
        logger.debug("Truncated acknowledgement %s for %s", data, command.name)
        return CommandResult(success=False, command_echo=command.command_echo)
    prefix = data[:2]
    if prefix == NAK_PREFIX:
        error_code = parse_hex(data, 4, 2) if len(data) >= 6 else None
        return CommandResult(success=False, command_echo=parse_hex(data, 2, 2), error_code=error_code)
    if prefix == ACK_PREFIX:
        return CommandResult(success=True, command_echo=parse_hex(data, 2, 2))
    logger.debug("Unexpected acknowledgement %s for %s", data, command.name)
    return CommandResult(success=False, command_echo=command.command_echo)


def decode_schedule_segment(data: str, command: "StickCommand") -> str:
    """Validate a Retrieve Schedule (A0) segment; the schedule parser does the rest."""
    expect_prefix(data, command)
    return data
