"""Command catalog for the SIP tunnel.

Each command is an upper-case hex opcode followed by its arguments as
fixed-width hex. The declared length tells the stick how many bytes the
reply carries and goes into the tunnelSip "length" parameter.
"""

from enum import Enum
from typing import Any, Callable, Optional

from . import responses
from .constants import ACK_PREFIX, SCHEDULE_PREFIX


def _hex(value: int, digits: int) -> str:
    """Format value as fixed-width upper-case hex, truncated to the field width."""
    return f"{value & ((1 << (digits * 4)) - 1):0{digits}X}"


class StickCommand(Enum):
    """Known tunnelled commands: (opcode, declared length, response prefix, argument widths).

    Argument widths are in hex digits; None means one byte per argument.
    """
    MODEL_AND_VERSION = ("02", 1, "82", None)
    AVAILABLE_STATIONS = ("03", 2, "83", None)
    RETRIEVE_SCHEDULE = ("20", 3, SCHEDULE_PREFIX, (4,))
    MANUALLY_RUN_PROGRAM = ("38", 2, ACK_PREFIX, None)
    MANUALLY_RUN_STATION = ("39", 4, ACK_PREFIX, (4, 2))
    STOP_IRRIGATION = ("40", 1, ACK_PREFIX, None)
    COMBINED_CONTROLLER_STATE = ("4C", 1, "CC", None)
    CONTROLLER_FIRMWARE_VERSION = ("0B", 1, "8B", None)

    def __init__(
        self,
        opcode: str,
        length: int,
        response_prefix: str,
        arg_widths: Optional[tuple[int, ...]],
    ):
        self.opcode = opcode
        self.length = length
        self.response_prefix = response_prefix
        self.arg_widths = arg_widths

    @property
    def command_echo(self) -> int:
        """Request opcode as a number, reported when no acknowledgement arrived."""
        return int(self.opcode, 16)

    def encode(self, *args: int) -> str:
        """Build the hex data string for this command.

        Fixed-width commands treat missing arguments as 0.
        """
        if self.arg_widths is None:
            return self.opcode + "".join(_hex(int(arg), 2) for arg in args)
        if len(args) > len(self.arg_widths):
            raise ValueError(
                f"{self.name} takes at most {len(self.arg_widths)} arguments, got {len(args)}"
            )
        values = list(args) + [0] * (len(self.arg_widths) - len(args))
        return self.opcode + "".join(
            _hex(int(value), width) for value, width in zip(values, self.arg_widths)
        )

    def decode(self, data: str) -> Any:
        """Decode a response to this command into its record type."""
        return _DECODERS[self](data, self)


_DECODERS: dict[StickCommand, Callable[[str, StickCommand], Any]] = {
    StickCommand.MODEL_AND_VERSION: responses.decode_model_and_version,
    StickCommand.AVAILABLE_STATIONS: responses.decode_available_stations,
    StickCommand.RETRIEVE_SCHEDULE: responses.decode_schedule_segment,
    StickCommand.MANUALLY_RUN_PROGRAM: responses.decode_command_result,
    StickCommand.MANUALLY_RUN_STATION: responses.decode_command_result,
    StickCommand.STOP_IRRIGATION: responses.decode_command_result,
    StickCommand.COMBINED_CONTROLLER_STATE: responses.decode_combined_controller_state,
    StickCommand.CONTROLLER_FIRMWARE_VERSION: responses.decode_controller_firmware_version,
}


def build_tunnel_params(command: StickCommand, *args: int) -> dict[str, Any]:
    """Build the tunnelSip params for a command."""
    return {"data": command.encode(*args), "length": command.length}
