import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum

from focuser.config.app_config import USER_SETTINGS_KEY
from focuser.errors import DecodeError
from focuser.storage.shared_defaults import KeyValueStore, decode_date, encode_date

logger = logging.getLogger(__name__)


# =========================
# QUESTIONARIO ONBOARDING
# =========================

class FocusLevel(str, Enum):
    VERY_LOW = "Very Low - Can't focus at all"
    LOW = "Low - Hard to concentrate"
    MODERATE = "Moderate - Sometimes distracted"
    GOOD = "Good - Usually focused"
    EXCELLENT = "Excellent - Highly focused"

    @property
    def score(self) -> int:
        return list(FocusLevel).index(self) + 1


class UrgeFrequency(str, Enum):
    RARE = "Rarely - Few times a week"
    SOMETIMES = "Sometimes - Once a day"
    MODERATE = "Moderate - 2-3 times a day"
    FREQUENT = "Frequent - 4-6 times a day"
    VERY_FREQUENT = "Very Frequent - 7+ times a day"

    @property
    def score(self) -> int:
        return list(UrgeFrequency).index(self) + 1


_RESISTANCE_SCORES = {
    "NEVER": 0,
    "RARELY": 1,
    "SOMETIMES": 3,
    "OFTEN": 5,
    "USUALLY": 7,
    "ALMOST": 9,
}


class ResistanceRate(str, Enum):
    NEVER = "Never - I always give in"
    RARELY = "Rarely - 1 in 10 times"
    SOMETIMES = "Sometimes - 3 in 10 times"
    OFTEN = "Often - 5 in 10 times"
    USUALLY = "Usually - 7 in 10 times"
    ALMOST = "Almost Always - 9 in 10 times"

    @property
    def score(self) -> int:
        return _RESISTANCE_SCORES[self.name]


# =========================
# MODELLO
# =========================

@dataclass(frozen=True)
class UserSettings:
    has_completed_onboarding: bool = False
    enable_notifications: bool = True
    show_motivational_quotes: bool = True
    accountability_partner_email: str | None = None
    first_watch_date: datetime | None = None
    daily_watch_frequency: int = 0
    focus_level: FocusLevel = FocusLevel.MODERATE
    urge_frequency: UrgeFrequency = UrgeFrequency.MODERATE
    resistance_rate: ResistanceRate = ResistanceRate.SOMETIMES
    journey_start_date: datetime | None = None

    def to_dict(self) -> dict:
        data = {
            "hasCompletedOnboarding": self.has_completed_onboarding,
            "enableNotifications": self.enable_notifications,
            "showMotivationalQuotes": self.show_motivational_quotes,
            "dailyWatchFrequency": self.daily_watch_frequency,
            "focusLevel": self.focus_level.value,
            "urgeFrequency": self.urge_frequency.value,
            "resistanceRate": self.resistance_rate.value,
        }
        # I campi opzionali assenti non vengono scritti
        if self.accountability_partner_email is not None:
            data["accountabilityPartnerEmail"] = self.accountability_partner_email
        if self.first_watch_date is not None:
            data["firstWatchDate"] = encode_date(self.first_watch_date)
        if self.journey_start_date is not None:
            data["journeyStartDate"] = encode_date(self.journey_start_date)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "UserSettings":
        if not isinstance(data, dict):
            raise DecodeError("Impostazioni non valide")
        try:
            first_watch = data.get("firstWatchDate")
            journey_start = data.get("journeyStartDate")
            return cls(
                has_completed_onboarding=bool(data["hasCompletedOnboarding"]),
                enable_notifications=bool(data["enableNotifications"]),
                show_motivational_quotes=bool(data["showMotivationalQuotes"]),
                accountability_partner_email=data.get("accountabilityPartnerEmail"),
                first_watch_date=decode_date(first_watch) if first_watch is not None else None,
                daily_watch_frequency=int(data["dailyWatchFrequency"]),
                focus_level=FocusLevel(data["focusLevel"]),
                urge_frequency=UrgeFrequency(data["urgeFrequency"]),
                resistance_rate=ResistanceRate(data["resistanceRate"]),
                journey_start_date=decode_date(journey_start) if journey_start is not None else None,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise DecodeError(f"Impostazioni non valide: {exc}") from exc


def _whole_years(start: datetime, end: datetime) -> int:
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return years


def estimate_recovery_days(settings: UserSettings, now: datetime | None = None) -> int:
    """
    Stima dei giorni di recupero a partire dal questionario, tra 30 e 365.
    """
    now = now or datetime.now(timezone.utc)

    frequency_multiplier = 1.0 + (settings.daily_watch_frequency * 0.1)
    days = int(90 * frequency_multiplier)

    days += (5 - settings.focus_level.score) * 5
    days += settings.urge_frequency.score * 3
    days -= settings.resistance_rate.score * 2

    if settings.first_watch_date is not None:
        years_since = max(0, _whole_years(settings.first_watch_date, now))
        days += min(years_since * 5, 30)

    return max(30, min(days, 365))


# =========================
# MANAGER
# =========================

class SettingsManager:
    def __init__(self, defaults: KeyValueStore):
        self.defaults = defaults
        self.settings = self._load()

    def _load(self) -> UserSettings:
        data = self.defaults.get_data(USER_SETTINGS_KEY)
        if data is None:
            return UserSettings()
        try:
            return UserSettings.from_dict(json.loads(data.decode("utf-8")))
        except (DecodeError, UnicodeDecodeError, ValueError) as exc:
            logger.warning("Impostazioni illeggibili, uso i valori predefiniti: %s", exc)
            return UserSettings()

    def complete_onboarding(self) -> None:
        self.update_settings(replace(self.settings, has_completed_onboarding=True))

    def update_settings(self, new_settings: UserSettings) -> None:
        self.settings = new_settings
        self._save()

    def estimated_recovery_days(self, now: datetime | None = None) -> int:
        return estimate_recovery_days(self.settings, now)

    def _save(self) -> None:
        try:
            self.defaults.set_data(USER_SETTINGS_KEY, json.dumps(self.settings.to_dict()).encode("utf-8"))
        except (TypeError, ValueError, OSError) as exc:
            logger.error("Salvataggio impostazioni fallito: %s", exc)
