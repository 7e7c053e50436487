import argparse
import json
import logging
import sys
from datetime import datetime

from .calc import get_timezone
from .config import (
    CONFIG_PATH,
    clear_alarm,
    enabled_alarms,
    get_prayer_times,
    load_config,
    save_config,
    set_alarm,
    settings_from_config,
)
from .errors import InvalidConfiguration
from .methods import METHODS, Madhab
from .prayer import Prayer
from .schedule import DEFAULT_HORIZON_DAYS


def _parse_now(value, tzinfo):
    if not value:
        return datetime.now(tzinfo)
    try:
        now = datetime.fromisoformat(value)
    except ValueError:
        raise InvalidConfiguration(f"Malformed time: {value}") from None
    return now if now.tzinfo else now.replace(tzinfo=tzinfo)


def _parse_prayer(name):
    prayer = Prayer.parse(name)
    if prayer is None:
        raise InvalidConfiguration(f"Unknown prayer: {name}")
    return prayer


def today_payload(prayer_time):
    return {
        "date": prayer_time.date.isoformat(),
        "times": {prayer.value: instant.isoformat() for prayer, instant in prayer_time.items()},
    }


def next_payload(result):
    if result is None:
        return None
    return {
        "prayer": result.prayer.value,
        "date": result.date.isoformat(),
        "playSound": result.play_sound,
    }


def handle_cli(args):
    config = load_config(args.config)

    if args.list_methods:
        for key in METHODS:
            print(f"{key}: {METHODS[key]['name']}")
        return 0

    if args.list_locations:
        for name, loc in config.get("locations", {}).items():
            label = loc.get("label") or name
            tz = loc.get("tz", "local")
            print(f"{name}: {label} ({loc.get('lat')}, {loc.get('lng')}) [{tz}]")
        return 0

    if args.list_alarms:
        settings = settings_from_config(config)
        for key in enabled_alarms(settings):
            print(f"{key}: {json.dumps(settings[key])}")
        return 0

    if args.use_location:
        if args.use_location not in config.get("locations", {}):
            raise InvalidConfiguration(f"Unknown location: {args.use_location}")
        config["location"] = args.use_location
        save_config(config, args.config)
        return 0

    if args.set_method:
        if args.set_method not in METHODS:
            raise InvalidConfiguration(f"Unknown method: {args.set_method}")
        config["method"] = args.set_method
        save_config(config, args.config)
        return 0

    if args.set_madhab:
        config["madhab"] = Madhab.parse(args.set_madhab).value
        save_config(config, args.config)
        return 0

    if args.set_offset:
        prayer, minutes = args.set_offset
        prayer_key = _parse_prayer(prayer).value
        config.setdefault("adjustments", {})[prayer_key] = int(minutes)
        save_config(config, args.config)
        return 0

    if args.set_alarm:
        prayer, signal = args.set_alarm
        days = [d for d in args.days.split(",") if d.strip()] if args.days else None
        set_alarm(config, _parse_prayer(prayer), signal.lower(), days)
        save_config(config, args.config)
        return 0

    if args.clear_alarm:
        prayer, signal = args.clear_alarm
        clear_alarm(config, _parse_prayer(prayer), signal.lower())
        save_config(config, args.config)
        return 0

    if args.set_location:
        if args.lat is None or args.lng is None:
            raise InvalidConfiguration("--set-location needs --lat and --lng")
        config.setdefault("locations", {})[args.set_location] = {
            "lat": float(args.lat),
            "lng": float(args.lng),
            "tz": args.tz or config.get("default_tz"),
            "label": args.set_location
        }
        config["location"] = args.set_location
        save_config(config, args.config)
        return 0

    if args.today or args.next:
        settings = settings_from_config(config)
        tzinfo = get_timezone(settings.get("TIMEZONE"))
        now = _parse_now(args.now, tzinfo)
        prayer_time = get_prayer_times(args.date or now, settings)

        if args.today:
            print(json.dumps(today_payload(prayer_time), ensure_ascii=True))
            return 0

        result = prayer_time.next_prayer(
            now,
            settings,
            use_settings=not args.all,
            check_next_days=args.check_next_days,
            horizon_days=args.horizon,
        )
        print(json.dumps(next_payload(result), ensure_ascii=True))
        return 0

    return 0


def build_arg_parser():
    parser = argparse.ArgumentParser(description="Prayer times and next prayer alarm")
    parser.add_argument("--config", default=CONFIG_PATH, help="Path to the JSON config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    parser.add_argument("--list-methods", action="store_true", help="List calculation methods")
    parser.add_argument("--list-locations", action="store_true", help="List locations from config")
    parser.add_argument("--list-alarms", action="store_true", help="List enabled notify/sound settings")
    parser.add_argument("--use-location", help="Switch current location to a saved one")
    parser.add_argument("--set-location", help="Add or update a location and set it active")
    parser.add_argument("--lat", help="Latitude for --set-location")
    parser.add_argument("--lng", help="Longitude for --set-location")
    parser.add_argument("--tz", help="IANA time zone for --set-location (optional)")
    parser.add_argument("--set-method", help="Set calculation method")
    parser.add_argument("--set-madhab", help="Set madhab for Asr (shafi or hanafi)")
    parser.add_argument("--set-offset", nargs=2, metavar=("PRAYER", "MIN"), help="Set prayer offset in minutes")
    parser.add_argument("--set-alarm", nargs=2, metavar=("PRAYER", "SIGNAL"), help="Enable notify or sound for a prayer")
    parser.add_argument("--days", help="Comma separated weekdays for --set-alarm, 0 = Sunday")
    parser.add_argument("--clear-alarm", nargs=2, metavar=("PRAYER", "SIGNAL"), help="Disable notify or sound for a prayer")
    parser.add_argument("--today", action="store_true", help="Print the day's prayer times as JSON")
    parser.add_argument("--date", help="Day for --today (YYYY-MM-DD)")
    parser.add_argument("--next", action="store_true", help="Print the next armed prayer as JSON")
    parser.add_argument("--now", help="ISO time to search from for --next")
    parser.add_argument("--all", action="store_true", help="Ignore notify settings for --next")
    parser.add_argument("--check-next-days", action="store_true", help="Search following days for --next")
    parser.add_argument("--horizon", type=int, default=DEFAULT_HORIZON_DAYS, help="Days to search ahead")
    return parser


def main(argv=None):
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    try:
        return handle_cli(args)
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
