"""Comfort-level profiles: weekly heating schedules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .const import ProfileType

if TYPE_CHECKING:
    from typing import Self

FOUR_LEVELS = ("wake", "leave", "return", "sleep")
SIX_LEVELS = ("wake", "level1", "level2", "level3", "level4", "sleep")

DAYS = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)

_DAYS_BY_TYPE = {
    ProfileType.ONE_DAY: DAYS[:1],
    ProfileType.TWO_DAY: DAYS[:2],
    ProfileType.SEVEN_DAY: DAYS,
}


@dataclass
class ComfortLevel:
    """One switching point: ``[time, temp1, temp2, enable_temp2]`` on the wire."""

    time: str
    temp1: Any = None
    temp2: Any = None
    enable_temp2: Any = None

    @classmethod
    def from_json(cls, resp: list[Any]) -> Self:
        padded = list(resp) + [None] * (4 - len(resp))
        return cls(*padded[:4])

    def to_json(self) -> list[Any]:
        return [self.time, self.temp1, self.temp2, self.enable_temp2]

    def synopsis(self) -> tuple[str, Any]:
        return (self.time, self.temp1)


@dataclass
class DaySchedule:
    """The comfort levels of a single day, in 4-level or 6-level form."""

    levels: dict[str, ComfortLevel] = field(default_factory=dict)
    level_count: int = 6

    @property
    def level_names(self) -> tuple[str, ...]:
        return FOUR_LEVELS if self.level_count == 4 else SIX_LEVELS

    @classmethod
    def from_json(cls, resp: dict[str, Any]) -> Self:
        """Decode a day; a ``leave`` entry selects the 4-level layout."""
        level_count = 4 if "leave" in resp else 6
        names = FOUR_LEVELS if level_count == 4 else SIX_LEVELS
        levels = {
            name: ComfortLevel.from_json(resp[name]) for name in names if name in resp
        }
        return cls(levels=levels, level_count=level_count)

    def to_json(self) -> dict[str, list[Any]]:
        return {
            name: self.levels[name].to_json()
            for name in self.level_names
            if name in self.levels
        }

    def synopsis(self) -> dict[str, tuple[str, Any]]:
        return {
            name: self.levels[name].synopsis()
            for name in self.level_names
            if name in self.levels
        }


@dataclass
class Profile:
    """A weekly schedule made of one, two or seven day schedules."""

    type: ProfileType = ProfileType.ONE_DAY
    days: dict[str, DaySchedule] = field(default_factory=dict)

    @classmethod
    def from_json(cls, resp: dict[str, Any]) -> Self:
        """
        Decode a profile body.

        Keys other than day names (such as ``device``) are ignored.  The
        schedule length is derived from the days present: tuesday means
        7-day, monday without tuesday means 5/2-day, otherwise 24h.
        """
        days = {day: DaySchedule.from_json(resp[day]) for day in DAYS if day in resp}
        if "tuesday" in days:
            profile_type = ProfileType.SEVEN_DAY
        elif "monday" in days:
            profile_type = ProfileType.TWO_DAY
        else:
            profile_type = ProfileType.ONE_DAY
        return cls(type=profile_type, days=days)

    def to_json(self) -> dict[str, Any]:
        return {
            day: self.days[day].to_json()
            for day in _DAYS_BY_TYPE[self.type]
            if day in self.days
        }

    def synopsis(self) -> dict[str, Any]:
        return {
            day: self.days[day].synopsis()
            for day in _DAYS_BY_TYPE[self.type]
            if day in self.days
        }


@dataclass
class DeviceProfile:
    """Profile 0 of a single device, as returned by GET_PROFILE_0."""

    device_name: str | None = None
    timestamp: int | None = None
    profile: Profile = field(default_factory=Profile)

    @classmethod
    def from_json(cls, resp: dict[str, Any]) -> Self:
        body = resp["profiles"][0]
        return cls(
            device_name=body.get("device"),
            timestamp=resp.get("TIMESTAMP"),
            profile=Profile.from_json(body),
        )

    def to_json(self) -> dict[str, Any]:
        body = self.profile.to_json()
        body["device"] = self.device_name
        return {"TIMESTAMP": self.timestamp, "profiles": [body]}

    def synopsis(self) -> dict[str, Any]:
        return self.profile.synopsis()


@dataclass
class NamedProfile:
    """A stored profile from the hub's registry (GET_PROFILES)."""

    profile_id: int | None = None
    name: str | None = None
    group: str | None = None
    info: Profile = field(default_factory=Profile)

    @classmethod
    def from_json(cls, resp: dict[str, Any]) -> Self:
        return cls(
            profile_id=resp.get("PROFILE_ID"),
            name=resp.get("name"),
            group=resp.get("group"),
            info=Profile.from_json(resp.get("info") or {}),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "PROFILE_ID": self.profile_id,
            "name": self.name,
            "group": self.group,
            "info": self.info.to_json(),
        }

    def synopsis(self) -> dict[str, Any]:
        return {"profile_id": self.profile_id, **self.info.synopsis()}
