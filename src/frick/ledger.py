from datetime import datetime

from loguru import logger

from frick.errors import InvalidInput
from frick.store import KeyValueStore
from frick.utils.time import day_key, parse_day_key

DAILY_KEY_PREFIX = "dailyBlocked_"


class DailyTimeLedger:
    """Accumulated blocked seconds per local calendar day."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def today_key(now: datetime | None = None) -> str:
        return day_key(now)

    def get(self, key: str) -> float:
        """Seconds recorded for `key`; days with no entry count as zero."""
        return float(self.store.get(DAILY_KEY_PREFIX + key, 0.0))

    def add(self, key: str, seconds: float) -> float:
        """Adds `seconds` to the total for `key` and returns the new total."""
        if seconds < 0:
            raise InvalidInput(f"Cannot record negative time ({seconds}s) for {key}")

        total = self.get(key) + float(seconds)
        self.store.set(DAILY_KEY_PREFIX + key, total)
        logger.debug(f"Ledger {key}: +{seconds:.1f}s (total {total:.1f}s)")
        return total

    def history(self, days: int | None = None) -> list[tuple[str, float]]:
        """Recorded days, newest first. Keys that are not valid dates are skipped."""
        entries = []
        for full_key in self.store.keys(DAILY_KEY_PREFIX):
            key = full_key[len(DAILY_KEY_PREFIX):]
            try:
                parse_day_key(key)
            except ValueError:
                logger.warning(f"Ignoring malformed ledger key: {full_key}")
                continue
            entries.append((key, self.get(key)))

        entries.sort(key=lambda entry: entry[0], reverse=True)
        if days is not None:
            entries = entries[:days]
        return entries
