import csv
import json
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import DataSourceError
from app.core.indicators import MarketFingerprint, PrevWave, RsiZone
from app.core.models import Direction, JudgmentSnapshot
from app.infrastructure.journal.mapper import CSV_COLUMNS, JournalMapper
from app.infrastructure.journal.store import JsonRecordStore


def _write(path, payload):
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")


def test_upsert_get_delete(tmp_path, make_record):
    store = JsonRecordStore(str(tmp_path / "records.json"))
    assert store.get_all() == []

    a, b = make_record(), make_record(profit=-20.0)
    store.upsert(a)
    store.upsert(b)
    assert [r.id for r in store.get_all()] == [b.id, a.id]
    assert store.get(a.id) == a

    edited = replace(a, outcome=replace(a.outcome, result_memo="見直し"))
    store.upsert(edited)
    assert store.get(a.id).outcome.result_memo == "見直し"
    assert len(store.get_all()) == 2

    assert store.delete(a.id) is True
    assert store.delete(a.id) is False
    assert store.get(a.id) is None


def test_record_round_trip_keeps_every_field(make_record):
    record = make_record(
        high=1030.0,
        low=990.5,
        fingerprint=MarketFingerprint(prev_wave=PrevWave.LH, rsi_zone=RsiZone.OVERBOUGHT),
        planned_stop_price=980.0,
        planned_limit_price=1040.0,
        cut_loss_price=975.0,
        market_memo="寄り付き",
        notion_url="https://www.notion.so/page",
        image_data="data:image/png;base64,AAAA",
        min_win_rate=45.0,
    )
    record = replace(record, snapshot=JudgmentSnapshot(
        recommendation=Direction.LONG, expected_move=25.0, confidence=61.2,
        win_rate=75.0, avg_profit=300.0, avg_loss=-120.0, pseudo_case_count=4,
    ))

    restored = JournalMapper.to_record(json.loads(json.dumps(JournalMapper.to_dict(record))))
    assert restored == record


def test_legacy_record_gets_defaults():
    record = JournalMapper.to_record({
        "id": "legacy-1",
        "createdAt": "2023-05-01T00:00:00.000Z",
        "symbol": "nk225m",
        "directionPlanned": "short",
        "entryPrice": 32000,
        "hasResult": True,
        "profit": 1500,
    })

    assert record.created_at == datetime(2023, 5, 1, tzinfo=timezone.utc)
    assert record.updated_at == record.created_at
    assert record.timeframe == "1時間"
    assert record.entry.trade_type == "real"
    assert record.entry.min_win_rate == 30.0
    assert record.fingerprint == MarketFingerprint()
    assert record.fingerprint.prev_wave == PrevWave.HH
    assert record.direction == Direction.SHORT
    assert record.outcome.direction_taken == Direction.SHORT
    assert record.snapshot.recommendation is None
    assert record.snapshot.expected_move_unit == "円"


def test_unknown_indicator_value_is_rejected(tmp_path):
    path = tmp_path / "records.json"
    _write(path, {"version": 1, "records": [{"id": "x", "prevWave": "ZZ"}]})
    with pytest.raises(DataSourceError):
        JsonRecordStore(str(path)).get_all()


def test_corrupt_file_raises(tmp_path):
    path = tmp_path / "records.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(DataSourceError):
        JsonRecordStore(str(path)).get_all()


def test_import_merges_by_updated_at(tmp_path, make_record):
    store = JsonRecordStore(str(tmp_path / "records.json"))
    existing = make_record()
    stale = make_record()
    store.save_all([existing, stale])

    newer = replace(existing, updated_at=existing.updated_at + timedelta(days=1),
                    outcome=replace(existing.outcome, result_memo="updated"))
    older = replace(stale, updated_at=stale.updated_at - timedelta(days=1),
                    outcome=replace(stale.outcome, result_memo="ignored"))
    fresh = make_record()

    import_path = tmp_path / "import.json"
    _write(import_path, JournalMapper.to_payload([newer, older, fresh]))

    added, updated = store.import_json(str(import_path))
    assert (added, updated) == (1, 1)
    assert store.get(existing.id).outcome.result_memo == "updated"
    assert store.get(stale.id).outcome.result_memo == ""
    assert store.get(fresh.id) is not None


@pytest.mark.parametrize("payload", [
    {"version": 2, "records": []},
    {"version": 1},
    [],
])
def test_import_rejects_invalid_payload(tmp_path, payload):
    import_path = tmp_path / "import.json"
    _write(import_path, payload)
    with pytest.raises(DataSourceError):
        JsonRecordStore(str(tmp_path / "records.json")).import_json(str(import_path))


def test_export_json_then_import_into_empty_store(tmp_path, make_record):
    source = JsonRecordStore(str(tmp_path / "a.json"))
    records = [make_record(), make_record(profit=None, has_result=False)]
    source.save_all(records)
    source.export_json(str(tmp_path / "export.json"))

    target = JsonRecordStore(str(tmp_path / "b.json"))
    assert target.import_json(str(tmp_path / "export.json")) == (2, 0)
    assert {r.id: r for r in target.get_all()} == {r.id: r for r in records}


def test_export_csv(tmp_path, make_record):
    store = JsonRecordStore(str(tmp_path / "records.json"))
    record = make_record(profit=900.0, market_memo='memo, with "quotes"')
    store.save_all([record])

    out = tmp_path / "trades.csv"
    store.export_csv(str(out))

    with out.open(encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == CSV_COLUMNS
    assert "imageData" not in rows[0]
    row = dict(zip(rows[0], rows[1]))
    assert row["id"] == record.id
    assert row["profit"] == "900"
    assert row["hasResult"] == "true"
    assert row["prevWave"] == "HH"
    assert row["marketMemo"] == 'memo, with "quotes"'
    assert row["recommendation"] == ""
