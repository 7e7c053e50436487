from enum import Enum

from .errors import InvalidConfiguration


class Prayer(str, Enum):
    FAJR = "fajr"
    SUNRISE = "sunrise"
    DHUHR = "dhuhr"
    ASR = "asr"
    MAGHRIB = "maghrib"
    ISHA = "isha"
    TAHAJJUD = "tahajjud"

    @property
    def label(self):
        return self.value.capitalize()

    @classmethod
    def parse(cls, name):
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            return None


# Temporal order within one day; tahajjud may fall after midnight.
PRAYERS_IN_ORDER = [
    Prayer.FAJR,
    Prayer.SUNRISE,
    Prayer.DHUHR,
    Prayer.ASR,
    Prayer.MAGHRIB,
    Prayer.ISHA,
    Prayer.TAHAJJUD,
]

# Markers that are shown but never alerted for.
NON_PRAYERS = [Prayer.SUNRISE]

ALERT_PRAYERS = [p for p in PRAYERS_IN_ORDER if p not in NON_PRAYERS]

SIGNALS = ("notify", "sound")


def adhan_setting_key(prayer, signal):
    """Settings-store key for a prayer/signal pair, e.g. ``FAJR_NOTIFY``."""
    if signal not in SIGNALS:
        raise InvalidConfiguration(f"Unknown signal: {signal}")
    return f"{Prayer(prayer).name}_{signal.upper()}"
