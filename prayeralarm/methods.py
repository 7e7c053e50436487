from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from .errors import InvalidConfiguration

# Isha given as "<n> min" is an interval after sunset instead of a depression angle.
METHODS = {
    "MuslimWorldLeague": {
        "name": "Muslim World League",
        "params": {"fajr": 18, "isha": 17},
        "adjustments": {"dhuhr": 1},
    },
    "Egyptian": {
        "name": "Egyptian General Authority of Survey",
        "params": {"fajr": 19.5, "isha": 17.5},
        "adjustments": {"dhuhr": 1},
    },
    "Karachi": {
        "name": "University of Islamic Sciences, Karachi",
        "params": {"fajr": 18, "isha": 18},
        "adjustments": {"dhuhr": 1},
    },
    "UmmAlQura": {
        "name": "Umm al-Qura University, Makkah",
        "params": {"fajr": 18.5, "isha": "90 min"},
    },
    "Dubai": {
        "name": "Dubai",
        "params": {"fajr": 18.2, "isha": 18.2},
        "adjustments": {"sunrise": -3, "dhuhr": 3, "asr": 3, "maghrib": 3},
    },
    "MoonsightingCommittee": {
        "name": "Moonsighting Committee Worldwide",
        "params": {"fajr": 18, "isha": 18, "seasonal": True},
        "adjustments": {"dhuhr": 5, "maghrib": 3},
    },
    "NorthAmerica": {
        "name": "Islamic Society of North America (ISNA)",
        "params": {"fajr": 15, "isha": 15},
        "adjustments": {"dhuhr": 1},
    },
    "Kuwait": {
        "name": "Kuwait",
        "params": {"fajr": 18, "isha": 17.5},
    },
    "Qatar": {
        "name": "Qatar",
        "params": {"fajr": 18, "isha": "90 min"},
    },
    "Singapore": {
        "name": "Majlis Ugama Islam Singapura",
        "params": {"fajr": 20, "isha": 18, "rounding": "up"},
        "adjustments": {"dhuhr": 1},
    },
    "Tehran": {
        "name": "Institute of Geophysics, University of Tehran",
        "params": {"fajr": 17.7, "isha": 14, "maghrib": 4.5},
    },
    "Turkey": {
        "name": "Diyanet Isleri Baskanligi, Turkey",
        "params": {"fajr": 18, "isha": 17},
        "adjustments": {"sunrise": -7, "dhuhr": 5, "asr": 4, "maghrib": 7},
    },
    "Other": {
        "name": "Other",
        "params": {"fajr": 0, "isha": 0},
    },
}

DEFAULT_TAHAJJUD_FRACTION = 2.0 / 3.0


class _Choice(str, Enum):
    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        aliases = getattr(cls, "_aliases", lambda: {})()
        key = aliases.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise InvalidConfiguration(f"Unknown {cls.__name__}: {value}") from None


class Madhab(_Choice):
    SHAFI = "shafi"
    HANAFI = "hanafi"

    @staticmethod
    def _aliases():
        return {"standard": "shafi", "maliki": "shafi", "hanbali": "shafi"}

    @property
    def shadow_ratio(self):
        return 2 if self is Madhab.HANAFI else 1


class HighLatitudeRule(_Choice):
    MIDDLE_OF_THE_NIGHT = "middle_of_the_night"
    SEVENTH_OF_THE_NIGHT = "seventh_of_the_night"
    TWILIGHT_ANGLE = "twilight_angle"

    @staticmethod
    def _aliases():
        return {"nightmiddle": "middle_of_the_night", "oneseventh": "seventh_of_the_night", "anglebased": "twilight_angle"}

    def night_portion(self, angle):
        if self is HighLatitudeRule.SEVENTH_OF_THE_NIGHT:
            return 1 / 7.0
        if self is HighLatitudeRule.TWILIGHT_ANGLE:
            return angle / 60.0
        return 1 / 2.0


class Rounding(_Choice):
    NONE = "none"
    NEAREST = "nearest"
    UP = "up"


@dataclass(frozen=True)
class MethodParams:
    key: str
    name: str
    fajr_angle: float
    isha_angle: float = None
    isha_minutes: float = None
    maghrib_angle: float = None
    high_latitude_rule: HighLatitudeRule = HighLatitudeRule.MIDDLE_OF_THE_NIGHT
    rounding: Rounding = None
    seasonal_twilight: bool = False
    tahajjud_fraction: float = DEFAULT_TAHAJJUD_FRACTION
    adjustments: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))

    def adjustment(self, prayer):
        return self.adjustments.get(getattr(prayer, "value", prayer), 0)


def _is_min(val):
    return isinstance(val, str) and "min" in val


def _param_minutes(val):
    return float(val.split()[0])


def get_method_params(method_key):
    """Resolve a method key to its immutable parameter set."""
    method = METHODS.get(method_key)
    if not method:
        raise InvalidConfiguration(f"Unknown method: {method_key}")
    params = method["params"]

    isha = params.get("isha", 0)
    rule = params.get("high_lats")
    rounding = params.get("rounding")
    return MethodParams(
        key=method_key,
        name=method["name"],
        fajr_angle=float(params.get("fajr", 0)),
        isha_angle=None if _is_min(isha) else float(isha),
        isha_minutes=_param_minutes(isha) if _is_min(isha) else None,
        maghrib_angle=float(params["maghrib"]) if "maghrib" in params else None,
        high_latitude_rule=HighLatitudeRule.parse(rule) if rule else HighLatitudeRule.MIDDLE_OF_THE_NIGHT,
        rounding=Rounding.parse(rounding) if rounding else None,
        seasonal_twilight=bool(params.get("seasonal", False)),
        tahajjud_fraction=float(params.get("tahajjud", DEFAULT_TAHAJJUD_FRACTION)),
        adjustments=MappingProxyType(dict(method.get("adjustments", {}))),
    )
