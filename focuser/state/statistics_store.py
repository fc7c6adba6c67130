import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from focuser.config.app_config import USER_STATISTICS_KEY
from focuser.errors import DecodeError
from focuser.storage.shared_defaults import KeyValueStore, decode_date, encode_date

logger = logging.getLogger(__name__)

DATE_KEY_FORMAT = "%Y-%m-%d"

MILESTONES = [
    ("First Day", 1),
    ("One Week Clean", 7),
    ("Two Weeks Strong", 14),
    ("One Month Champion", 30),
    ("90-Day Warrior", 90),
    ("Half Year Hero", 180),
    ("One Year Legend", 365),
]


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class Statistics:
    start_date: datetime = field(default_factory=_local_now)
    manual_resists: int = 0
    longest_streak: int = 0
    last_check_in_date: datetime | None = None
    daily_check_ins: dict[str, int] = field(default_factory=dict)

    @property
    def total_resists(self) -> int:
        return self.manual_resists

    def record_resist(self, now: datetime) -> None:
        self.manual_resists += 1
        self.last_check_in_date = now
        key = now.strftime(DATE_KEY_FORMAT)
        self.daily_check_ins[key] = self.daily_check_ins.get(key, 0) + 1

    def days_clean(self, now: datetime) -> int:
        return max(0, (now - self.start_date).days)

    def update_streak(self, now: datetime) -> bool:
        """Alza longest_streak se la serie attuale lo supera."""
        days = self.days_clean(now)
        if days > self.longest_streak:
            self.longest_streak = days
            return True
        return False

    def to_dict(self) -> dict:
        data = {
            "manualResists": self.manual_resists,
            "longestStreak": self.longest_streak,
            "startDate": encode_date(self.start_date),
            "dailyCheckIns": dict(self.daily_check_ins),
        }
        if self.last_check_in_date is not None:
            data["lastCheckInDate"] = encode_date(self.last_check_in_date)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Statistics":
        if not isinstance(data, dict):
            raise DecodeError("Statistiche non valide")
        try:
            last = data.get("lastCheckInDate")
            check_ins = data["dailyCheckIns"]
            if not isinstance(check_ins, dict):
                raise TypeError("dailyCheckIns non e' un dizionario")
            return cls(
                start_date=decode_date(data["startDate"]),
                manual_resists=int(data["manualResists"]),
                longest_streak=int(data["longestStreak"]),
                last_check_in_date=decode_date(last) if last is not None else None,
                daily_check_ins={str(k): int(v) for k, v in check_ins.items()},
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise DecodeError(f"Statistiche non valide: {exc}") from exc


def achieved_milestones(streak_days: int) -> list[str]:
    return [title for title, days in MILESTONES if streak_days >= days]


class StatisticsManager:
    def __init__(self, defaults: KeyValueStore, clock: Callable[[], datetime] = _local_now):
        self.defaults = defaults
        self._clock = clock
        self.statistics = self._load()

    def _load(self) -> Statistics:
        data = self.defaults.get_data(USER_STATISTICS_KEY)
        if data is None:
            return Statistics(start_date=self._clock())
        try:
            return Statistics.from_dict(json.loads(data.decode("utf-8")))
        except (DecodeError, ValueError) as exc:
            logger.warning("Statistiche illeggibili, riparto da zero: %s", exc)
            return Statistics(start_date=self._clock())

    @property
    def streak_days(self) -> int:
        return self.statistics.days_clean(self._clock())

    def record_resist(self) -> None:
        now = self._clock()
        self.statistics.record_resist(now)
        self.statistics.update_streak(now)
        self._save()

    def refresh_streak(self) -> None:
        if self.statistics.update_streak(self._clock()):
            self._save()

    def reset_statistics(self) -> None:
        self.statistics = Statistics(start_date=self._clock())
        self._save()

    def _save(self) -> None:
        try:
            self.defaults.set_data(USER_STATISTICS_KEY, json.dumps(self.statistics.to_dict()).encode("utf-8"))
        except (TypeError, ValueError, OSError) as exc:
            logger.error("Salvataggio statistiche fallito: %s", exc)
