from .calc import (
    Coordinates,
    PrayerAdjustments,
    PrayerTime,
    PrayerTimesOptions,
    compute_prayer_times,
)
from .config import get_prayer_times, is_minimum_settings_available
from .errors import InvalidConfiguration
from .methods import METHODS, HighLatitudeRule, Madhab, Rounding, get_method_params
from .prayer import ALERT_PRAYERS, NON_PRAYERS, PRAYERS_IN_ORDER, Prayer, adhan_setting_key
from .schedule import NextPrayer, next_prayer, resolve_setting

__all__ = [
    "ALERT_PRAYERS",
    "Coordinates",
    "HighLatitudeRule",
    "InvalidConfiguration",
    "METHODS",
    "Madhab",
    "NON_PRAYERS",
    "NextPrayer",
    "PRAYERS_IN_ORDER",
    "Prayer",
    "PrayerAdjustments",
    "PrayerTime",
    "PrayerTimesOptions",
    "Rounding",
    "adhan_setting_key",
    "compute_prayer_times",
    "get_method_params",
    "get_prayer_times",
    "is_minimum_settings_available",
    "next_prayer",
    "resolve_setting",
]
