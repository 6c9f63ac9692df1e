"""Controller session: the JSON-RPC calls that make up the stick API.

Orchestrates direct methods (getNetworkStatus, getWifiParams, ...) and
tunnelled SIP commands, assembles a ControllerSnapshot per poll, and
exposes the manual irrigation commands.

A session is not thread-safe: the request id counter is shared by every
call. Use one session per controller and one caller at a time.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from ..config import StickSettings
from ..protocol.commands import StickCommand, build_tunnel_params
from ..protocol.constants import (
    JSONRPC_VERSION,
    MAX_MINUTES,
    MAX_PROGRAM_INDEX,
    MAX_SCHEDULE_ZONES,
    MAX_ZONE,
    METHOD_NETWORK_STATUS,
    METHOD_SETTINGS,
    METHOD_TUNNEL_SIP,
    METHOD_WEATHER_AND_STATUS,
    METHOD_WIFI_PARAMS,
    METHOD_ZIP_CODE,
    MIN_MINUTES,
    SCHEDULE_CONTROLLER_INFO,
    SCHEDULE_PROGRAM_INFO,
    SCHEDULE_START_TIMES,
    SCHEDULE_ZONE_DURATIONS,
    ZONES_PER_PAGE,
)
from ..protocol.crypto import PayloadCoder
from ..protocol.exceptions import StickException, StickProtocolError
from ..protocol.schedule import ScheduleParser
from ..protocol.stick_types import (
    AvailableStations,
    CombinedState,
    CommandResult,
    ControllerFirmwareVersion,
    ControllerSnapshot,
    ModelAndVersion,
    NetworkStatus,
    ProgramStatus,
    WeatherStatus,
    WifiStatus,
    ZipCodeInfo,
    ZoneStatus,
)
from .transport import StickTransport

logger = logging.getLogger(__name__)


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return int(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        text = value.strip()
        return text.lower() == "true" or text == "1"
    return False


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        text = value.strip()
        return text or None
    return None


def build_request(request_id: int, method: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """JSON-RPC request envelope, keys in the order the stick app sends them."""
    return {
        "id": request_id,
        "jsonrpc": JSONRPC_VERSION,
        "method": method,
        "params": dict(params or {}),
    }


def decode_wifi_status(params: dict[str, Any]) -> WifiStatus:
    return WifiStatus(
        rssi=_as_int(params.get("rssi"), 0),
        ssid=_as_str(params.get("wifiSsid")),
        mac_address=_as_str(params.get("macAddress")),
        firmware_version=_as_str(params.get("stickVersion")),
    )


def decode_zip_code(result: dict[str, Any]) -> ZipCodeInfo:
    return ZipCodeInfo(code=_as_str(result.get("code")), country=_as_str(result.get("country")))


def decode_weather_status(result: dict[str, Any]) -> WeatherStatus:
    """Pick the stick id, controller name and custom station names out of a cloud reply."""
    controller_name = None
    station_names: dict[int, str] = {}
    controller = result.get("Controller")
    if isinstance(controller, dict):
        controller_name = _as_str(controller.get("custom_name")) or _as_str(controller.get("customName"))
        names = controller.get("customStationNames")
        if isinstance(names, dict):
            for key, value in names.items():
                name = _as_str(value)
                if name is None:
                    continue
                try:
                    station_names[int(str(key).strip())] = name
                except ValueError:
                    logger.debug("Ignoring invalid custom station key %r", key)
    return WeatherStatus(
        stick_id=_as_str(result.get("StickId")),
        controller_name=controller_name,
        custom_station_names=station_names,
    )


class StickSession:
    """Synchronous client for one controller behind one stick."""

    def __init__(
        self,
        settings: StickSettings,
        transport: Optional[StickTransport] = None,
    ):
        self.settings = settings
        self.coder = PayloadCoder(settings.password)
        self.transport = transport or StickTransport(settings)
        self._request_id = 0

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "StickSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---- JSON-RPC plumbing ----

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def invoke(self, method: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Call a JSON-RPC method and return its result map.

        Response ids are not checked against the request id.
        """
        payload = build_request(self._next_request_id(), method, params)
        logger.debug("Sending request %r to %s with payload %s", method, self.transport.url, payload)
        body = self.coder.encode(payload)
        envelope = self.coder.decode(self.transport.post(body))
        logger.debug("Response for %r from %s: %s", method, self.transport.url, envelope)

        if not isinstance(envelope, dict):
            raise StickProtocolError(f"Unexpected response envelope for {method}: {envelope!r}")
        error = envelope.get("error")
        if isinstance(error, dict):
            raise StickProtocolError(f"Stick responded with an error: {error.get('message')}")
        result = envelope.get("result")
        if not isinstance(result, dict):
            raise StickProtocolError(f"Unexpected response payload for {method}")
        return result

    def send_command(self, command: StickCommand, *args: int) -> Any:
        """Tunnel a SIP command and decode its response."""
        response = self.invoke(METHOD_TUNNEL_SIP, build_tunnel_params(command, *args))
        data = response.get("data")
        if not isinstance(data, str):
            raise StickProtocolError("Tunnel response missing data field")
        if len(data) < 2:
            raise StickProtocolError(f"Tunnel response malformed: {data!r}")
        return command.decode(data.upper())

    # ---- Polling ----

    def poll(self) -> ControllerSnapshot:
        """Run the full polling sequence and return a consistent snapshot.

        Any failure aborts the poll; nothing partial is returned.
        """
        network_result = self.invoke(METHOD_NETWORK_STATUS)
        network = NetworkStatus(
            network_up=_as_bool(network_result.get("networkUp")),
            internet_up=_as_bool(network_result.get("internetUp")),
        )
        wifi = decode_wifi_status(self.invoke(METHOD_WIFI_PARAMS))
        program_count = _as_int(self.invoke(METHOD_SETTINGS).get("numPrograms"), 0)

        stations: AvailableStations = self.send_command(StickCommand.AVAILABLE_STATIONS, 0)
        combined: CombinedState = self.send_command(StickCommand.COMBINED_CONTROLLER_STATE)
        summaries = self.fetch_schedule_summaries(program_count, stations)

        snapshot = ControllerSnapshot(
            network=network,
            wifi=wifi,
            combined_state=combined,
            zones=ZoneStatus(
                available_zones=stations.active_zones,
                slot_count=stations.slot_count,
                active_zone=combined.active_station,
                remaining_runtime=combined.remaining_runtime,
            ),
            programs=ProgramStatus(program_count=program_count, summaries=tuple(summaries)),
            refreshed_at=datetime.now(timezone.utc),
        )
        logger.info(
            "Poll OK: zones=%s programs=%d active_station=%d",
            sorted(stations.active_zones), program_count, combined.active_station,
        )
        return snapshot

    def schedule_subcommands(self, program_count: int, stations: AvailableStations) -> list[int]:
        """Retrieve Schedule sub-commands needed for a full schedule.

        Zone pages cover the highest known zone, or the slot count (capped at
        22 zones) when no zone is known.
        """
        subcommands = [SCHEDULE_CONTROLLER_INFO]
        subcommands += [SCHEDULE_PROGRAM_INFO | program for program in range(program_count)]
        subcommands += [SCHEDULE_START_TIMES | program for program in range(program_count)]
        if stations.active_zones:
            zone_limit = max(stations.active_zones)
        else:
            zone_limit = min(stations.slot_count, MAX_SCHEDULE_ZONES)
        pages = (zone_limit + 1) // ZONES_PER_PAGE
        subcommands += [SCHEDULE_ZONE_DURATIONS | page for page in range(pages)]
        return subcommands

    def fetch_schedule_summaries(self, program_count: int, stations: AvailableStations) -> list[str]:
        segments = [
            self.send_command(StickCommand.RETRIEVE_SCHEDULE, subcommand)
            for subcommand in self.schedule_subcommands(program_count, stations)
        ]
        parser = ScheduleParser(program_count, stations.active_zones)
        parser.accept_all(segments)
        return parser.build_summaries()

    # ---- Lookups (cached by the caller) ----

    def get_model_and_version(self) -> ModelAndVersion:
        return self.send_command(StickCommand.MODEL_AND_VERSION)

    def get_controller_firmware_version(self) -> ControllerFirmwareVersion:
        return self.send_command(StickCommand.CONTROLLER_FIRMWARE_VERSION)

    def get_available_stations(self, page: int = 0) -> AvailableStations:
        return self.send_command(StickCommand.AVAILABLE_STATIONS, page)

    def get_combined_controller_state(self) -> CombinedState:
        return self.send_command(StickCommand.COMBINED_CONTROLLER_STATE)

    def get_zip_code(self) -> ZipCodeInfo:
        return decode_zip_code(self.invoke(METHOD_ZIP_CODE))

    def get_weather_and_status(self, stick_id: str, country: str, zip_code: str) -> WeatherStatus:
        """Controller metadata lookup; normally sent to a session built from cloud_settings()."""
        result = self.invoke(
            METHOD_WEATHER_AND_STATUS,
            {"StickId": stick_id, "Country": country, "ZipCode": zip_code},
        )
        return decode_weather_status(result)

    # ---- Manual commands ----

    def _run_command(self, command: StickCommand, description: str, *args: int) -> CommandResult:
        try:
            return self.send_command(command, *args)
        except StickException as exc:
            logger.warning("Error %s: %s", description, exc)
        return CommandResult(success=False, command_echo=command.command_echo)

    def run_program(self, program_index: int) -> CommandResult:
        """Start a stored program (0 = program A)."""
        command = StickCommand.MANUALLY_RUN_PROGRAM
        if not 0 <= program_index <= MAX_PROGRAM_INDEX:
            logger.debug("Program index %d out of range", program_index)
            return CommandResult(success=False, command_echo=command.command_echo)
        return self._run_command(command, f"starting program {program_index}", program_index)

    def run_station(self, zone: int, minutes: int) -> CommandResult:
        """Run one zone; minutes are clamped to 1..255."""
        command = StickCommand.MANUALLY_RUN_STATION
        if not 1 <= zone <= MAX_ZONE:
            logger.debug("Zone %d out of range", zone)
            return CommandResult(success=False, command_echo=command.command_echo)
        safe_minutes = max(MIN_MINUTES, min(MAX_MINUTES, minutes))
        return self._run_command(command, f"starting zone {zone}", zone, safe_minutes)

    def run_zones(self, zones: Iterable[int], minutes: int) -> CommandResult:
        """Run zones one after another, stopping at the first failure.

        Non-positive zone numbers are skipped; with nothing to run the result is a failure.
        """
        result = CommandResult(success=False, command_echo=StickCommand.MANUALLY_RUN_STATION.command_echo)
        for zone in zones:
            if zone <= 0:
                continue
            result = self.run_station(zone, minutes)
            if not result.success:
                return result
        return result

    def stop_all_zones(self) -> CommandResult:
        return self._run_command(StickCommand.STOP_IRRIGATION, "stopping irrigation")

    # ---- asyncio wrappers ----

    async def async_poll(self) -> ControllerSnapshot:
        """Async version of poll."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.poll)

    async def async_run_program(self, program_index: int) -> CommandResult:
        """Async version of run_program."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.run_program, program_index)

    async def async_run_station(self, zone: int, minutes: int) -> CommandResult:
        """Async version of run_station."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.run_station, zone, minutes)

    async def async_stop_all_zones(self) -> CommandResult:
        """Async version of stop_all_zones."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.stop_all_zones)
