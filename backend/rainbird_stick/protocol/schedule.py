"""Reconstruction of irrigation program schedules from Retrieve Schedule segments.

A schedule arrives as many A0 segments, one per sub-command:
    0x00         controller info (ignored)
    0x10 | p     program frequency/period (ignored)
    0x60 | p     start times of program p, minutes since midnight, FFFF = unset
    0x80 | page  run times of zones page*2+1 and page*2+2, one value per program

Segments may arrive in any order, repeated or not at all. A ScheduleParser
is built for one poll cycle and discarded once the summaries are read.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .constants import (
    NO_START_TIME,
    SCHEDULE_CONTROLLER_INFO,
    SCHEDULE_PREFIX,
    SCHEDULE_PROGRAM_INFO,
    SCHEDULE_START_TIMES,
    SCHEDULE_ZONE_DURATIONS,
    ZONES_PER_PAGE,
)

logger = logging.getLogger(__name__)


def program_name(index: int) -> str:
    """Program A..Z for the first 26 programs, then Program 27, 28, ..."""
    if 0 <= index < 26:
        return f"Program {chr(ord('A') + index)}"
    return f"Program {index + 1}"


def _hex_words(data: str) -> list[int]:
    """Split a hex string into 16-bit values, dropping a trailing partial word."""
    return [int(data[i:i + 4], 16) for i in range(0, len(data) - 3, 4)]


@dataclass
class ProgramSchedule:
    """Start times and zone run times (minutes) collected for one program."""
    index: int
    start_times: list[str] = field(default_factory=list)
    zone_durations: dict[int, int] = field(default_factory=dict)

    def summary(self, active_zones: frozenset[int] = frozenset()) -> str:
        if self.start_times:
            starts = "Starts " + ", ".join(self.start_times)
        else:
            starts = "No starts"

        durations = sorted(self.zone_durations.items())
        if active_zones:
            durations = [(zone, minutes) for zone, minutes in durations if zone in active_zones]
        if durations:
            zones = "Zones " + ", ".join(f"{zone}={minutes}m" for zone, minutes in durations)
        else:
            zones = "No zones"
        return f"{program_name(self.index)}: {starts}; {zones}"


class ScheduleParser:
    """Accumulates schedule segments and renders one summary per program."""

    def __init__(self, program_count: int, active_zones: Optional[Iterable[int]] = None):
        self.program_count = max(0, program_count)
        self.active_zones = frozenset(active_zones or ())
        self.programs: dict[int, ProgramSchedule] = {}

    def _program(self, index: int) -> ProgramSchedule:
        if index not in self.programs:
            self.programs[index] = ProgramSchedule(index)
        return self.programs[index]

    def accept(self, data: str) -> None:
        """Consume one segment. Anything that is not an A0 segment is ignored."""
        if not data.startswith(SCHEDULE_PREFIX) or len(data) < 6:
            return
        try:
            subcommand = int(data[4:6], 16)
        except ValueError:
            logger.debug("Ignoring schedule segment with bad sub-command: %s", data)
            return
        rest = data[6:]

        if subcommand == SCHEDULE_CONTROLLER_INFO:
            return
        if subcommand & SCHEDULE_PROGRAM_INFO == SCHEDULE_PROGRAM_INFO:
            return
        try:
            if subcommand & SCHEDULE_START_TIMES == SCHEDULE_START_TIMES:
                self._accept_start_times(subcommand & ~SCHEDULE_START_TIMES, rest)
            elif subcommand & SCHEDULE_ZONE_DURATIONS == SCHEDULE_ZONE_DURATIONS:
                self._accept_zone_durations(subcommand & ~SCHEDULE_ZONE_DURATIONS, rest)
        except ValueError:
            logger.debug("Ignoring malformed schedule segment: %s", data)

    def accept_all(self, segments: Iterable[str]) -> None:
        for segment in segments:
            self.accept(segment)

    def _accept_start_times(self, program_index: int, rest: str) -> None:
        program = self._program(program_index)
        for value in _hex_words(rest):
            if value >= NO_START_TIME:
                continue
            time_text = f"{value // 60:02d}:{value % 60:02d}"
            if time_text not in program.start_times:
                program.start_times.append(time_text)

    def _accept_zone_durations(self, page: int, rest: str) -> None:
        durations = _hex_words(rest)
        per_zone = len(durations) // ZONES_PER_PAGE
        if per_zone == 0:
            return
        zone_base = page * ZONES_PER_PAGE
        for offset in range(ZONES_PER_PAGE):
            zone = zone_base + offset + 1
            if self.active_zones and zone not in self.active_zones:
                continue
            for program_index in range(min(per_zone, self.program_count)):
                minutes = durations[offset * per_zone + program_index]
                if minutes <= 0:
                    continue
                self._program(program_index).zone_durations[zone] = minutes

    def build_summaries(self) -> list[str]:
        """One summary per program, in program order."""
        return [
            self.programs.get(index, ProgramSchedule(index)).summary(self.active_zones)
            for index in range(self.program_count)
        ]
