import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from .calc import PrayerTime, compute_prayer_times
from .errors import InvalidConfiguration
from .prayer import ALERT_PRAYERS, Prayer, adhan_setting_key

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 7


class NextPrayer(NamedTuple):
    prayer: Prayer
    date: datetime
    play_sound: bool


def weekday_index(day):
    """Weekday of a date, 0 = Sunday through 6 = Saturday."""
    return day.isoweekday() % 7


def resolve_setting(setting, weekday):
    """Whether a notify/sound setting is on for a weekday.

    A setting is either a bool for every day or a mapping of weekday index to
    bool; JSON-loaded mappings carry the index as a string. Anything absent is
    off.
    """
    if setting is None:
        return False
    if isinstance(setting, bool):
        return setting
    if isinstance(setting, Mapping):
        value = setting.get(weekday, setting.get(str(weekday)))
        return bool(value)
    raise InvalidConfiguration(f"Invalid notification setting: {setting!r}")


def is_armed(settings, prayer, signal, weekday):
    if not settings:
        return False
    return resolve_setting(settings.get(adhan_setting_key(prayer, signal)), weekday)


def _first_on_day(prayer_time, now, settings, use_settings):
    weekday = weekday_index(prayer_time.date)
    best: Optional[NextPrayer] = None
    for prayer in ALERT_PRAYERS:
        instant = prayer_time.get(prayer)
        if instant is None or instant < now:
            continue
        if use_settings and not is_armed(settings, prayer, "notify", weekday):
            continue
        if best is None or instant < best.date:
            best = NextPrayer(prayer, instant, False)
    if best is None:
        return None
    # tahajjud keeps the weekday of the day it belongs to, even past midnight
    return best._replace(play_sound=is_armed(settings, best.prayer, "sound", weekday))


def next_prayer(
    prayer_time: PrayerTime,
    now: datetime,
    settings: Optional[Mapping] = None,
    *,
    use_settings: bool = False,
    check_next_day: bool = False,
    check_next_days: bool = False,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> Optional[NextPrayer]:
    """Find the soonest prayer at or after ``now``.

    With ``use_settings`` only prayers whose notify flag is on for that day's
    weekday count. ``check_next_day``/``check_next_days`` keep looking one
    day at a time for up to ``horizon_days`` more days. Returns None when
    nothing qualifies.
    """
    if not isinstance(prayer_time, PrayerTime):
        raise InvalidConfiguration(f"Expected PrayerTime, got {type(prayer_time).__name__}")
    if not isinstance(now, datetime):
        raise InvalidConfiguration(f"Invalid current time: {now!r}")
    if settings is not None and not isinstance(settings, Mapping):
        raise InvalidConfiguration(f"Invalid settings: {settings!r}")
    if isinstance(horizon_days, bool) or not isinstance(horizon_days, int) or horizon_days < 0:
        raise InvalidConfiguration(f"Invalid horizon: {horizon_days!r}")

    search_ahead = check_next_day or check_next_days
    if prayer_time.options is None and (search_ahead or now.tzinfo is None):
        raise InvalidConfiguration("PrayerTime carries no calculation options")
    if now.tzinfo is None:
        now = now.replace(tzinfo=prayer_time.options.tz)

    days_left = horizon_days if search_ahead else 0
    day = prayer_time
    while True:
        found = _first_on_day(day, now, settings, use_settings)
        if found is not None:
            return found
        if days_left <= 0:
            logger.debug("No prayer armed after %s", now.isoformat())
            return None
        days_left -= 1
        next_date = day.date + timedelta(days=1)
        logger.debug("Nothing armed on %s, checking %s", day.date, next_date)
        day = compute_prayer_times(day.options.for_day(next_date))
