import copy
import json
import logging
import os
from collections.abc import Mapping

from .calc import Coordinates, PrayerTimesOptions, compute_prayer_times
from .errors import InvalidConfiguration
from .prayer import Prayer, adhan_setting_key

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".config", "prayeralarm")
CONFIG_PATH = os.environ.get("PRAYERALARM_CONFIG") or os.path.join(CONFIG_DIR, "config.json")

DEFAULT_CONFIG = {
    "location": None,
    "locations": {},
    "default_tz": None,
    "method": "MuslimWorldLeague",
    "madhab": "shafi",
    "high_latitude_rule": None,
    "adjustments": {
        "fajr": 0,
        "sunrise": 0,
        "dhuhr": 0,
        "asr": 0,
        "maghrib": 0,
        "isha": 0,
        "tahajjud": 0
    },
    "alarms": {}
}


def load_config(path=CONFIG_PATH):
    if not os.path.exists(path):
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(DEFAULT_CONFIG, f, indent=2)
        logger.info("Created default config at %s", path)
        return copy.deepcopy(DEFAULT_CONFIG)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def save_config(config, path=CONFIG_PATH):
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)
    logger.info("Saved config to %s", path)


def set_alarm(config, prayer, signal, days=None, enabled=True):
    """Turn a notify/sound flag on for every day, or only for the given weekdays (0 = Sunday)."""
    key = adhan_setting_key(prayer, signal)
    alarms = config.setdefault("alarms", {})
    if days is None:
        alarms[key] = bool(enabled)
        return key
    day_map = {}
    for day in days:
        day = int(day)
        if not 0 <= day <= 6:
            raise InvalidConfiguration(f"Invalid weekday: {day}")
        day_map[str(day)] = bool(enabled)
    alarms[key] = day_map
    return key


def clear_alarm(config, prayer, signal):
    key = adhan_setting_key(prayer, signal)
    config.get("alarms", {}).pop(key, None)
    return key


def settings_from_config(config):
    """Flatten a config file into the settings store read by get_prayer_times and next_prayer."""
    location_key = config.get("location")
    loc = config.get("locations", {}).get(location_key) or {}
    settings = {
        "LOCATION_LAT": loc.get("lat"),
        "LOCATION_LONG": loc.get("lng"),
        "TIMEZONE": loc.get("tz") or config.get("default_tz"),
        "CALCULATION_METHOD_KEY": config.get("method"),
        "MADHAB": config.get("madhab"),
        "HIGH_LATITUDE_RULE": config.get("high_latitude_rule"),
        "ADJUSTMENTS": config.get("adjustments"),
    }
    settings.update(config.get("alarms", {}))
    return settings


def _is_coordinate(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_minimum_settings_available(settings=None):
    if not isinstance(settings, Mapping):
        return False
    return (
        _is_coordinate(settings.get("LOCATION_LAT"))
        and _is_coordinate(settings.get("LOCATION_LONG"))
        and bool(settings.get("CALCULATION_METHOD_KEY"))
    )


def get_prayer_times(day, settings):
    """Prayer times of ``day`` for the location and method in the settings store."""
    if not is_minimum_settings_available(settings):
        raise InvalidConfiguration("Location and calculation method must be configured")
    options = PrayerTimesOptions(
        date=day,
        coordinates=Coordinates(settings["LOCATION_LAT"], settings["LOCATION_LONG"]),
        method=settings["CALCULATION_METHOD_KEY"],
        madhab=settings.get("MADHAB"),
        adjustments=settings.get("ADJUSTMENTS"),
        high_latitude_rule=settings.get("HIGH_LATITUDE_RULE"),
        tz=settings.get("TIMEZONE"),
    )
    return compute_prayer_times(options)


def enabled_alarms(settings):
    """Settings keys of every prayer/signal pair with any day turned on."""
    keys = []
    for prayer in Prayer:
        for signal in ("notify", "sound"):
            key = adhan_setting_key(prayer, signal)
            value = settings.get(key)
            if value is True or (isinstance(value, Mapping) and any(value.values())):
                keys.append(key)
    return keys
