from datetime import datetime

import pytest

from frick.errors import InvalidInput
from frick.ledger import DailyTimeLedger
from frick.store import KeyValueStore


def test_today_key_format():
    assert DailyTimeLedger.today_key(datetime(2024, 1, 9, 23, 59)) == "2024-01-09"


def test_missing_day_is_zero(store):
    ledger = DailyTimeLedger(store)
    assert ledger.get("2024-05-01") == 0


def test_add_accumulates(store):
    ledger = DailyTimeLedger(store)
    ledger.add("2024-05-01", 30.5)
    ledger.add("2024-05-01", 60)
    assert ledger.get("2024-05-01") == 90.5
    assert ledger.get("2024-05-02") == 0


def test_add_negative_rejected(store):
    ledger = DailyTimeLedger(store)
    ledger.add("2024-05-01", 10)
    with pytest.raises(InvalidInput):
        ledger.add("2024-05-01", -1)
    assert ledger.get("2024-05-01") == 10


def test_uses_persisted_key_layout(state_path):
    ledger = DailyTimeLedger(KeyValueStore(state_path))
    ledger.add("2024-05-01", 3600)

    reloaded = KeyValueStore(state_path)
    assert reloaded.get("dailyBlocked_2024-05-01") == 3600.0


def test_history_newest_first_and_skips_malformed(store):
    ledger = DailyTimeLedger(store)
    ledger.add("2024-05-01", 10)
    ledger.add("2024-05-03", 30)
    ledger.add("2024-05-02", 20)
    store.set("dailyBlocked_garbage", 5)

    assert ledger.history() == [
        ("2024-05-03", 30.0),
        ("2024-05-02", 20.0),
        ("2024-05-01", 10.0),
    ]
    assert ledger.history(days=1) == [("2024-05-03", 30.0)]
