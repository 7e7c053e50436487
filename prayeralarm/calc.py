import calendar
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from types import MappingProxyType
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidConfiguration
from .methods import HighLatitudeRule, Madhab, Rounding, get_method_params
from .prayer import PRAYERS_IN_ORDER, Prayer

logger = logging.getLogger(__name__)

COORDINATE_PRECISION = 6


def _dtr(d):
    return (d * math.pi) / 180.0


def _rtd(r):
    return (r * 180.0) / math.pi


def _fix_angle(a):
    return a - 360.0 * math.floor(a / 360.0)


def _fix_hour(h):
    return h - 24.0 * math.floor(h / 24.0)


def _julian_date(y, m, d):
    if m <= 2:
        y -= 1
        m += 12
    a = math.floor(y / 100)
    b = 2 - a + math.floor(a / 4)
    return math.floor(365.25 * (y + 4716)) + math.floor(30.6001 * (m + 1)) + d + b - 1524.5


def _sun_position(jd):
    d = jd - 2451545.0
    g = _fix_angle(357.529 + 0.98560028 * d)
    q = _fix_angle(280.459 + 0.98564736 * d)
    L = _fix_angle(q + 1.915 * math.sin(_dtr(g)) + 0.020 * math.sin(_dtr(2 * g)))
    e = 23.439 - 0.00000036 * d
    ra = _rtd(math.atan2(math.cos(_dtr(e)) * math.sin(_dtr(L)), math.cos(_dtr(L)))) / 15.0
    ra = _fix_hour(ra)
    eqt = q / 15.0 - ra
    decl = _rtd(math.asin(math.sin(_dtr(e)) * math.sin(_dtr(L))))
    return decl, eqt


def _days_since_solstice(day, lat):
    day_of_year = day.timetuple().tm_yday
    leap = calendar.isleap(day.year)
    days_in_year = 366 if leap else 365
    if lat >= 0:
        days = day_of_year + 10
        if days >= days_in_year:
            days -= days_in_year
    else:
        days = day_of_year - (173 if leap else 172)
        if days < 0:
            days += days_in_year
    return days


def _seasonal_minutes(a, b, c, d, dyy):
    if dyy < 91:
        return a + (b - a) / 91.0 * dyy
    if dyy < 137:
        return b + (c - b) / 46.0 * (dyy - 91)
    if dyy < 183:
        return c + (d - c) / 46.0 * (dyy - 137)
    if dyy < 229:
        return d + (c - d) / 46.0 * (dyy - 183)
    if dyy < 275:
        return c + (b - c) / 46.0 * (dyy - 229)
    return b + (a - b) / 91.0 * (dyy - 275)


def _seasonal_morning_twilight(day, lat):
    """Minutes between seasonally adjusted dawn and sunrise (Moonsighting Committee tables)."""
    x = abs(lat) / 55.0
    return _seasonal_minutes(75 + 28.65 * x, 75 + 19.44 * x, 75 + 32.74 * x, 75 + 48.10 * x,
                             _days_since_solstice(day, lat))


def _seasonal_evening_twilight(day, lat):
    """Minutes between sunset and the seasonally adjusted end of twilight."""
    x = abs(lat) / 55.0
    return _seasonal_minutes(75 + 25.60 * x, 75 + 2.050 * x, 75 - 9.21 * x, 75 + 6.14 * x,
                             _days_since_solstice(day, lat))


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def __post_init__(self):
        for name, limit in (("lat", 90.0), ("lng", 180.0)):
            value = getattr(self, name)
            if not _is_number(value) or abs(value) > limit:
                raise InvalidConfiguration(f"Invalid {name}: {value!r}")
            object.__setattr__(self, name, float(value))

    def rounded(self, ndigits=COORDINATE_PRECISION):
        return Coordinates(round(self.lat, ndigits), round(self.lng, ndigits))


@dataclass(frozen=True)
class PrayerAdjustments:
    fajr: int = 0
    sunrise: int = 0
    dhuhr: int = 0
    asr: int = 0
    maghrib: int = 0
    isha: int = 0
    tahajjud: int = 0

    def __post_init__(self):
        for f in fields(self):
            if not _is_number(getattr(self, f.name)):
                raise InvalidConfiguration(f"Invalid adjustment for {f.name}: {getattr(self, f.name)!r}")

    @classmethod
    def from_mapping(cls, mapping):
        values = {}
        for key, minutes in (mapping or {}).items():
            prayer = Prayer.parse(key)
            if prayer is None:
                raise InvalidConfiguration(f"Unknown prayer for adjustment: {key}")
            values[prayer.value] = minutes
        return cls(**values)

    def get(self, prayer):
        return getattr(self, Prayer(prayer).value)


def get_timezone(tz_name):
    """Resolve an IANA name or tzinfo; None means the system's local zone.

    The local zone is the fixed offset in effect right now, so days across a
    DST change keep today's offset. Pass an IANA name to follow DST.
    """
    if tz_name is None:
        return datetime.now().astimezone().tzinfo
    if isinstance(tz_name, tzinfo):
        return tz_name
    if isinstance(tz_name, str):
        try:
            return ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            raise InvalidConfiguration(f"Unknown time zone: {tz_name}") from None
    raise InvalidConfiguration(f"Invalid time zone: {tz_name!r}")


def _calendar_day(value, tz):
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
        try:
            return _calendar_day(datetime.fromisoformat(value.strip()), tz)
        except ValueError:
            raise InvalidConfiguration(f"Malformed date: {value!r}") from None
    raise InvalidConfiguration(f"Malformed date: {value!r}")


@dataclass(frozen=True)
class PrayerTimesOptions:
    """Everything one day's prayer times depend on.

    ``date`` may be a date, a datetime or an ISO string; only its calendar day
    (in ``tz``) is kept. ``high_latitude_rule`` and ``rounding`` default to the
    method's own choice; without one, instants round to the nearest minute.
    """

    date: date
    coordinates: Coordinates
    method: str
    madhab: Madhab = Madhab.SHAFI
    adjustments: PrayerAdjustments = None
    high_latitude_rule: HighLatitudeRule = None
    rounding: Rounding = None
    tz: tzinfo = None

    def __post_init__(self):
        set_ = object.__setattr__
        tz = get_timezone(self.tz)
        set_(self, "tz", tz)
        set_(self, "date", _calendar_day(self.date, tz))

        coords = self.coordinates
        if isinstance(coords, (tuple, list)) and len(coords) == 2:
            coords = Coordinates(*coords)
        if not isinstance(coords, Coordinates):
            raise InvalidConfiguration(f"Invalid coordinates: {coords!r}")
        set_(self, "coordinates", coords)

        get_method_params(self.method)
        set_(self, "madhab", Madhab.parse(self.madhab if self.madhab is not None else Madhab.SHAFI))

        adjustments = self.adjustments
        if adjustments is None or isinstance(adjustments, Mapping):
            adjustments = PrayerAdjustments.from_mapping(adjustments)
        if not isinstance(adjustments, PrayerAdjustments):
            raise InvalidConfiguration(f"Invalid adjustments: {adjustments!r}")
        set_(self, "adjustments", adjustments)

        if self.high_latitude_rule is not None:
            set_(self, "high_latitude_rule", HighLatitudeRule.parse(self.high_latitude_rule))
        if self.rounding is not None:
            set_(self, "rounding", Rounding.parse(self.rounding))

    def for_day(self, day):
        return replace(self, date=day)


@dataclass(frozen=True)
class PrayerTime:
    """One calendar day's prayer instants, in canonical order.

    Events the sky does not produce on that day (polar night or day) and
    tahajjud without a following fajr are simply missing from ``times``.
    """

    date: date
    times: Mapping = field(default_factory=lambda: MappingProxyType({}))
    options: PrayerTimesOptions = field(default=None, repr=False, compare=False)

    def __getitem__(self, prayer):
        return self.times[Prayer(prayer)]

    def __contains__(self, prayer):
        return Prayer.parse(getattr(prayer, "value", prayer)) in self.times

    def get(self, prayer, default=None):
        return self.times.get(Prayer(prayer), default)

    def items(self):
        return self.times.items()

    def next_prayer(self, now=None, settings=None, **kwargs):
        """Next prayer of this day (and, optionally, following days) at or after ``now``.

        ``now`` defaults to the day's own start, as the calendar day is all the
        calculator keeps.
        """
        from .schedule import next_prayer

        if now is None:
            if self.options is None:
                raise InvalidConfiguration("PrayerTime carries no calculation options")
            now = datetime(self.date.year, self.date.month, self.date.day, tzinfo=self.options.tz)
        return next_prayer(self, now, settings, **kwargs)


class PrayTimes:
    """Raw event times for one day as hours from 00:00 UTC of that day."""

    def __init__(self, params, madhab=Madhab.SHAFI, high_latitude_rule=None):
        self.params = params
        self.asr_factor = Madhab.parse(madhab).shadow_ratio
        self.high_latitude_rule = high_latitude_rule or params.high_latitude_rule
        self.day = None
        self.lat = 0.0
        self.lng = 0.0
        self.jdate = 0.0

    def get_times(self, day, coords):
        self.day = day
        self.lat = coords.lat
        self.lng = coords.lng
        self.jdate = _julian_date(day.year, day.month, day.day) - self.lng / (15 * 24)
        times = {
            "fajr": 5,
            "sunrise": 6,
            "dhuhr": 12,
            "asr": 13,
            "sunset": 18,
            "maghrib": 18,
            "isha": 18,
        }
        times = self._compute_times(times)
        return self._adjust_times(times)

    def _mid_day(self, time):
        _, eqt = _sun_position(self.jdate + time)
        return _fix_hour(12 - eqt)

    def _sun_angle_time(self, angle, time, direction):
        decl, _ = _sun_position(self.jdate + time)
        noon = self._mid_day(time)
        numerator = -math.sin(_dtr(angle)) - math.sin(_dtr(decl)) * math.sin(_dtr(self.lat))
        denominator = math.cos(_dtr(decl)) * math.cos(_dtr(self.lat))
        if denominator == 0:
            return None
        x = numerator / denominator
        if not -1.0 <= x <= 1.0:
            # the sun never reaches this angle today
            return None
        t = _rtd(math.acos(x)) / 15.0
        return noon - t if direction == "ccw" else noon + t

    def _asr_time(self, factor, time):
        decl, _ = _sun_position(self.jdate + time)
        angle = -_rtd(math.atan(1.0 / (factor + math.tan(abs(_dtr(self.lat - decl))))))
        return self._sun_angle_time(angle, time, "cw")

    def _rise_set_angle(self):
        return 0.833

    def _compute_times(self, times):
        times = {k: v / 24 for k, v in times.items()}
        params = self.params
        fajr = self._sun_angle_time(params.fajr_angle, times["fajr"], "ccw")
        sunrise = self._sun_angle_time(self._rise_set_angle(), times["sunrise"], "ccw")
        dhuhr = self._mid_day(times["dhuhr"])
        asr = self._asr_time(self.asr_factor, times["asr"])
        sunset = self._sun_angle_time(self._rise_set_angle(), times["sunset"], "cw")
        maghrib = sunset
        if params.maghrib_angle is not None:
            maghrib = self._sun_angle_time(params.maghrib_angle, times["maghrib"], "cw")
        isha = None
        if params.isha_angle is not None:
            isha = self._sun_angle_time(params.isha_angle, times["isha"], "cw")
        return {
            "fajr": fajr,
            "sunrise": sunrise,
            "dhuhr": dhuhr,
            "asr": asr,
            "sunset": sunset,
            "maghrib": maghrib,
            "isha": isha,
        }

    def _adjust_times(self, times):
        times = {k: (v - self.lng / 15.0 if v is not None else None) for k, v in times.items()}
        sunset = times["sunset"]

        if times["maghrib"] is None or (sunset is not None and times["maghrib"] < sunset):
            times["maghrib"] = sunset

        times = self._adjust_high_lats(times)

        if self.params.isha_minutes is not None:
            times["isha"] = sunset + self.params.isha_minutes / 60.0 if sunset is not None else None
        return times

    def _adjust_high_lats(self, times):
        sunrise, sunset = times["sunrise"], times["sunset"]
        if sunrise is None or sunset is None:
            return times
        night = self._time_diff(sunset, sunrise)
        params = self.params

        if params.seasonal_twilight and self.lat >= 55:
            safe_fajr = sunrise - night / 7.0
            safe_isha = sunset + night / 7.0
            times["fajr"] = safe_fajr
            if params.isha_angle is not None:
                times["isha"] = safe_isha
            return times

        if params.seasonal_twilight:
            safe_fajr = sunrise - _seasonal_morning_twilight(self.day, self.lat) / 60.0
            safe_isha = sunset + _seasonal_evening_twilight(self.day, self.lat) / 60.0
        else:
            safe_fajr = sunrise - self.high_latitude_rule.night_portion(params.fajr_angle) * night
            safe_isha = sunset + self.high_latitude_rule.night_portion(params.isha_angle or 0.0) * night

        if times["fajr"] is None or times["fajr"] < safe_fajr:
            logger.debug("High-latitude correction of fajr on %s at lat %.4f", self.day, self.lat)
            times["fajr"] = safe_fajr
        if params.isha_angle is not None and (times["isha"] is None or times["isha"] > safe_isha):
            logger.debug("High-latitude correction of isha on %s at lat %.4f", self.day, self.lat)
            times["isha"] = safe_isha
        return times

    def _time_diff(self, time1, time2):
        return _fix_hour(time2 - time1)


def _round(instant, rounding):
    if rounding is Rounding.NEAREST:
        up = instant.second * 1_000_000 + instant.microsecond >= 30_000_000
        return instant.replace(second=0, microsecond=0) + timedelta(minutes=1 if up else 0)
    if rounding is Rounding.UP:
        up = instant.second or instant.microsecond
        return instant.replace(second=0, microsecond=0) + timedelta(minutes=1 if up else 0)
    return instant.replace(microsecond=0) + timedelta(seconds=1 if instant.microsecond >= 500_000 else 0)


def _rounding_for(options, params):
    return options.rounding or params.rounding or Rounding.NEAREST


@lru_cache(maxsize=256)
def _core_times(options):
    """Every event except tahajjud, as aware datetimes in the options' zone."""
    params = get_method_params(options.method)
    pray = PrayTimes(params, options.madhab, options.high_latitude_rule)
    raw = pray.get_times(options.date, options.coordinates)

    day = options.date
    midnight = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    rounding = _rounding_for(options, params)
    times = {}
    for prayer in PRAYERS_IN_ORDER:
        if prayer is Prayer.TAHAJJUD:
            continue
        hours = raw[prayer.value]
        if hours is None:
            logger.debug("No %s on %s at %s", prayer.value, day, options.coordinates)
            continue
        minutes = params.adjustment(prayer) + options.adjustments.get(prayer)
        instant = midnight + timedelta(hours=hours, minutes=minutes)
        times[prayer] = _round(instant, rounding).astimezone(options.tz)
    return MappingProxyType(times)


def _tahajjud_time(today, tomorrow, options, params):
    maghrib = today.get(Prayer.MAGHRIB)
    next_fajr = tomorrow.get(Prayer.FAJR)
    if maghrib is None or next_fajr is None:
        return None
    night = next_fajr - maghrib
    instant = maghrib + night * params.tahajjud_fraction + timedelta(minutes=options.adjustments.tahajjud)
    return _round(instant, _rounding_for(options, params)).astimezone(options.tz)


@lru_cache(maxsize=128)
def _compute_cached(options):
    logger.debug("Computing prayer times for %s at %s using %s", options.date, options.coordinates, options.method)
    params = get_method_params(options.method)
    times = dict(_core_times(options))
    tomorrow = _core_times(options.for_day(options.date + timedelta(days=1)))
    tahajjud = _tahajjud_time(times, tomorrow, options, params)
    if tahajjud is not None:
        times[Prayer.TAHAJJUD] = tahajjud
    else:
        logger.debug("Tahajjud unavailable on %s at %s", options.date, options.coordinates)
    return PrayerTime(date=options.date, times=MappingProxyType(times), options=options)


def compute_prayer_times(options):
    """Compute the prayer instants of ``options.date``.

    Raises InvalidConfiguration for invalid options; polar edge cases only
    leave events out of the result.
    """
    if not isinstance(options, PrayerTimesOptions):
        raise InvalidConfiguration(f"Expected PrayerTimesOptions, got {type(options).__name__}")
    return _compute_cached(replace(options, coordinates=options.coordinates.rounded()))
