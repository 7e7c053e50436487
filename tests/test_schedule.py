from datetime import date, datetime, timedelta

import pytest

from conftest import utc
from prayeralarm.calc import PrayerTime
from prayeralarm.config import get_prayer_times
from prayeralarm.errors import InvalidConfiguration
from prayeralarm.prayer import Prayer
from prayeralarm.schedule import NextPrayer, next_prayer, resolve_setting, weekday_index


def next_for(now, settings, **kwargs):
    return get_prayer_times(now, settings).next_prayer(now, settings, **kwargs)


class TestResolveSetting:
    @pytest.mark.parametrize(
        "setting,weekday,expected",
        [
            (None, 0, False),
            (True, 3, True),
            (False, 3, False),
            ({0: True}, 0, True),
            ({0: True}, 1, False),
            ({"2": True}, 2, True),
            ({2: False}, 2, False),
            ({}, 5, False),
        ],
    )
    def test_resolution(self, setting, weekday, expected):
        assert resolve_setting(setting, weekday) is expected

    def test_malformed(self):
        with pytest.raises(InvalidConfiguration):
            resolve_setting("yes", 0)


def test_weekday_index_starts_on_sunday():
    assert weekday_index(date(2022, 12, 25)) == 0
    assert weekday_index(date(2022, 12, 26)) == 1
    assert weekday_index(date(2022, 12, 31)) == 6


class TestWithoutSettings:
    def test_earliest_prayer_skips_sunrise(self, settings, reference_day):
        fajr = reference_day[Prayer.FAJR]
        result = next_prayer(reference_day, fajr + timedelta(seconds=1), settings)
        # sunrise comes next but is never alerted for
        assert result.play_sound is False

    def test_event_at_now_counts(self, reference_day):
        fajr = reference_day[Prayer.FAJR]
        assert next_prayer(reference_day, fajr) == NextPrayer(Prayer.FAJR, fajr, False)

    def test_nothing_left_today(self, reference_day):
        after = reference_day[Prayer.TAHAJJUD] + timedelta(seconds=1)
        assert next_prayer(reference_day, after) is None
        assert next_prayer(reference_day, after, check_next_day=True).prayer == Prayer.FAJR

    def test_never_before_now(self, reference_day):
        now = utc(2022, 12, 27)
        while now < utc(2022, 12, 29):
            result = next_prayer(reference_day, now, check_next_days=True)
            assert result is not None
            assert result.date >= now
            now += timedelta(minutes=37)

    def test_naive_now_uses_the_day_zone(self, reference_day):
        assert next_prayer(reference_day, datetime(2022, 12, 27)).prayer == Prayer.FAJR


class TestWithSettings:
    def test_returns_none_when_settings_are_empty(self, settings):
        assert next_for(utc(2022, 12, 27), settings, use_settings=True) is None
        assert next_for(utc(2022, 12, 27), settings, use_settings=True, check_next_days=True) is None

    def test_returns_the_correct_prayer(self, settings, reference_day):
        fajr = reference_day[Prayer.FAJR]
        settings["FAJR_NOTIFY"] = True
        result = next_for(utc(2022, 12, 27), settings, use_settings=True)
        assert result == NextPrayer(Prayer.FAJR, utc(2022, 12, 27, 4, 40), False)

        settings["FAJR_SOUND"] = True
        assert next_for(utc(2022, 12, 27), settings, use_settings=True) == NextPrayer(Prayer.FAJR, fajr, True)

        # advancing the clock past the only armed prayer
        after_fajr = fajr + timedelta(seconds=1)
        assert next_for(after_fajr, settings, use_settings=True) is None

        settings["DHUHR_NOTIFY"] = True
        result = next_for(after_fajr, settings, use_settings=True)
        assert result == NextPrayer(Prayer.DHUHR, utc(2022, 12, 27, 12, 2), False)

        # tahajjud usually falls on the next calendar date
        settings.update(TAHAJJUD_NOTIFY=True, TAHAJJUD_SOUND=True)
        result = next_for(result.date + timedelta(seconds=1), settings, use_settings=True)
        assert result == NextPrayer(Prayer.TAHAJJUD, utc(2022, 12, 28, 1, 8), True)

    @pytest.mark.parametrize("flag", ["check_next_day", "check_next_days"])
    def test_returns_the_next_available_prayer(self, settings, reference_day, flag):
        settings["FAJR_NOTIFY"] = True
        after_fajr = reference_day[Prayer.FAJR] + timedelta(seconds=1)
        result = next_for(after_fajr, settings, use_settings=True, **{flag: True})
        assert result == NextPrayer(Prayer.FAJR, utc(2022, 12, 28, 4, 41), False)

    def test_skips_days_that_are_disabled(self, settings):
        # Sunday morning, fajr is behind us but dhuhr is ahead
        now = utc(2022, 12, 25, 9)
        assert weekday_index(now.date()) == 0

        settings["FAJR_NOTIFY"] = {0: True}
        result = next_for(now, settings, use_settings=True, check_next_days=True)
        assert result.prayer == Prayer.FAJR
        assert result.play_sound is False
        assert weekday_index(result.date.date()) == 0
        assert result.date - now > timedelta(days=6)

        settings["DHUHR_NOTIFY"] = {0: True}
        result = next_for(now, settings, use_settings=True, check_next_days=True)
        assert result.date - now < timedelta(hours=10)

        settings["DHUHR_NOTIFY"] = {1: True}
        result = next_for(now, settings, use_settings=True, check_next_days=True)
        assert weekday_index(result.date.date()) == 1
        assert result.date - now < timedelta(hours=48)

        settings["DHUHR_SOUND"] = True
        result = next_for(now, settings, use_settings=True, check_next_days=True)
        assert weekday_index(result.date.date()) == 1

    def test_sound_uses_the_weekday_of_the_prayer(self, settings):
        now = utc(2022, 12, 25, 9)
        settings.update(FAJR_NOTIFY={0: True}, DHUHR_NOTIFY={0: True, 2: True}, DHUHR_SOUND={0: True})

        result = next_for(now, settings, use_settings=True, check_next_days=True)
        assert result.play_sound is True

        # from Monday the next armed dhuhr is Tuesday, which has no sound
        result = next_for(now + timedelta(days=1), settings, use_settings=True, check_next_days=True)
        assert result.play_sound is False

    def test_json_weekday_keys(self, settings):
        settings["ASR_NOTIFY"] = {"3": True}
        result = next_for(utc(2022, 12, 25, 9), settings, use_settings=True, check_next_days=True)
        assert result.prayer == Prayer.ASR
        assert result.date.date() == date(2022, 12, 28)

    def test_horizon_is_bounded(self, settings):
        # Saturday only, searched from Sunday morning
        settings["ISHA_NOTIFY"] = {6: True}
        now = utc(2022, 12, 25, 9)
        assert next_for(now, settings, use_settings=True, check_next_days=True, horizon_days=5) is None
        result = next_for(now, settings, use_settings=True, check_next_days=True, horizon_days=6)
        assert result.date.date() == date(2022, 12, 31)

    def test_repeated_calls_agree(self, settings):
        settings.update(MAGHRIB_NOTIFY={4: True}, MAGHRIB_SOUND={4: True})
        now = utc(2022, 12, 26, 20)
        first = next_for(now, settings, use_settings=True, check_next_days=True)
        assert first == next_for(now, settings, use_settings=True, check_next_days=True)
        assert first.play_sound is True


class TestInvalidInput:
    def test_not_a_prayer_time(self):
        with pytest.raises(InvalidConfiguration):
            next_prayer({"fajr": utc(2022, 12, 27, 4, 40)}, utc(2022, 12, 27))

    def test_bad_now(self, reference_day):
        with pytest.raises(InvalidConfiguration):
            next_prayer(reference_day, "2022-12-27")

    def test_bad_settings(self, reference_day):
        with pytest.raises(InvalidConfiguration):
            next_prayer(reference_day, utc(2022, 12, 27), ["FAJR_NOTIFY"])

    @pytest.mark.parametrize("horizon", [-1, 1.5, True])
    def test_bad_horizon(self, reference_day, horizon):
        with pytest.raises(InvalidConfiguration):
            next_prayer(reference_day, utc(2022, 12, 27), horizon_days=horizon)

    def test_search_needs_options(self, reference_day):
        bare = PrayerTime(date=reference_day.date, times=reference_day.times)
        assert next_prayer(bare, utc(2022, 12, 27)).prayer == Prayer.FAJR
        with pytest.raises(InvalidConfiguration):
            next_prayer(bare, utc(2022, 12, 27), check_next_days=True)
