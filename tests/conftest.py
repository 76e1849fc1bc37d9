from dataclasses import replace
from datetime import datetime, timezone

import pytest

from app.core.indicators import MarketFingerprint
from app.core.models import Direction, TradeEntry, TradeOutcome, TradeRecord

_counter = {"n": 0}


def _make_entry(**overrides) -> TradeEntry:
    values = dict(
        datetime_entry=datetime(2024, 1, 10, 9, 0),
        symbol="nk225mc",
        timeframe="1時間",
        direction_planned=Direction.LONG,
        entry_price=1000.0,
        size=1.0,
        fee_per_unit=5.0,
    )
    values.update(overrides)
    return TradeEntry(**values)


def _make_record(
    profit=100.0,
    direction=Direction.LONG,
    has_result=True,
    fingerprint=None,
    high=None,
    low=None,
    direction_taken=None,
    **entry_overrides,
) -> TradeRecord:
    _counter["n"] += 1
    entry = _make_entry(direction_planned=direction, **entry_overrides)
    if fingerprint is not None:
        entry = replace(entry, fingerprint=fingerprint)
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return TradeRecord(
        id=f"rec-{_counter['n']}",
        created_at=ts,
        updated_at=ts,
        entry=entry,
        outcome=TradeOutcome(
            has_result=has_result,
            datetime_exit=datetime(2024, 1, 10, 15, 0) if has_result else None,
            exit_price=1010.0 if has_result else None,
            direction_taken=direction_taken or direction,
            high_during_trade=high,
            low_during_trade=low,
            profit=profit,
        ),
    )


@pytest.fixture
def make_entry():
    return _make_entry


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def default_fingerprint():
    return MarketFingerprint()
