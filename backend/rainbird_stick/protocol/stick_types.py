"""Value types decoded from stick responses.

All records are immutable; a new set is built for every poll cycle.
Times reported by the controller are naive local datetimes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .constants import ModelInfo, lookup_model


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a mutating command (run program, run station, stop).

    command_echo is the opcode the controller acknowledged, or the request
    opcode when no response was received.
    """
    success: bool
    command_echo: int
    error_code: Optional[int] = None


@dataclass(frozen=True)
class NetworkStatus:
    network_up: bool
    internet_up: bool


@dataclass(frozen=True)
class WifiStatus:
    rssi: int
    ssid: Optional[str] = None
    mac_address: Optional[str] = None
    firmware_version: Optional[str] = None  # stickVersion


@dataclass(frozen=True)
class CombinedState:
    """Combined Controller State (CC) response."""
    delay_setting: int       # rain delay, days
    sensor_state: int
    irrigation_state: int
    seasonal_adjust: int     # percent
    remaining_runtime: int   # seconds
    active_station: int      # 0 = none
    controller_time: datetime


@dataclass(frozen=True)
class AvailableStations:
    """Station bitmap decoded from an Available Stations (83) response."""
    active_zones: frozenset[int]
    slot_count: int


@dataclass(frozen=True)
class ModelAndVersion:
    model_id: int
    protocol_major: int
    protocol_minor: int

    @property
    def model_info(self) -> ModelInfo:
        return lookup_model(self.model_id)

    @property
    def model_code(self) -> str:
        return self.model_info.code

    @property
    def model_name(self) -> str:
        return self.model_info.name


@dataclass(frozen=True)
class ControllerFirmwareVersion:
    major: int
    minor: int
    patch: int

    @property
    def version(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def __str__(self) -> str:
        return self.version


@dataclass(frozen=True)
class ZipCodeInfo:
    code: Optional[str] = None
    country: Optional[str] = None


@dataclass(frozen=True)
class WeatherStatus:
    """Controller metadata from the vendor cloud."""
    stick_id: Optional[str] = None
    controller_name: Optional[str] = None
    custom_station_names: dict[int, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ZoneStatus:
    available_zones: frozenset[int]
    slot_count: int
    active_zone: int
    remaining_runtime: int  # seconds


@dataclass(frozen=True)
class ProgramStatus:
    program_count: int
    summaries: tuple[str, ...] = ()


@dataclass(frozen=True)
class ControllerSnapshot:
    """Everything one poll cycle learns about a controller."""
    network: NetworkStatus
    wifi: WifiStatus
    combined_state: CombinedState
    zones: ZoneStatus
    programs: ProgramStatus
    refreshed_at: datetime
