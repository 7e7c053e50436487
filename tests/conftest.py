from datetime import date, datetime, timezone

import pytest

from prayeralarm.calc import Coordinates, PrayerTimesOptions, compute_prayer_times

# Reference location used throughout: (1, 1) in UTC, Moonsighting Committee.
REFERENCE_DAY = date(2022, 12, 27)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def reference_options():
    return PrayerTimesOptions(
        date=REFERENCE_DAY,
        coordinates=Coordinates(1, 1),
        method="MoonsightingCommittee",
        tz="UTC",
    )


@pytest.fixture
def reference_day(reference_options):
    return compute_prayer_times(reference_options)


@pytest.fixture
def settings():
    return {
        "LOCATION_LAT": 1,
        "LOCATION_LONG": 1,
        "CALCULATION_METHOD_KEY": "MoonsightingCommittee",
        "TIMEZONE": "UTC",
    }
