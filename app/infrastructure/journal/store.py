import csv
import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from app.config.logging import logger
from app.core.exceptions import DataDestinationError, DataSourceError
from app.core.models import TradeRecord
from .mapper import CSV_COLUMNS, EXPORT_VERSION, JournalMapper


def sort_by_entry_desc(records: List[TradeRecord]) -> List[TradeRecord]:
    """依進場時間由新到舊 (未填進場時間的排最後)"""
    return sorted(
        records,
        key=lambda r: r.entry.datetime_entry.isoformat() if r.entry.datetime_entry else "",
        reverse=True,
    )


class JsonRecordStore:
    """
    以單一 JSON 檔保存所有交易紀錄。
    每次寫入都整檔覆寫，新紀錄放在最前面。
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def _read_payload(self, path: Path) -> dict:
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise DataSourceError(f"Failed to read {path}: {e}")

    def _parse_records(self, raw_records: list) -> List[TradeRecord]:
        try:
            return [JournalMapper.to_record(raw) for raw in raw_records if isinstance(raw, dict)]
        except ValueError as e:
            raise DataSourceError(f"Invalid trade record: {e}")

    def get_all(self) -> List[TradeRecord]:
        if not self.path.exists():
            return []
        payload = self._read_payload(self.path)
        # 舊版直接存陣列
        raw_records = payload if isinstance(payload, list) else payload.get("records", [])
        return self._parse_records(raw_records)

    def get(self, record_id: str) -> Optional[TradeRecord]:
        return next((r for r in self.get_all() if r.id == record_id), None)

    def save_all(self, records: List[TradeRecord]):
        """先寫暫存檔再取代，避免寫到一半損毀"""
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(JournalMapper.to_payload(records), f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write journal file {self.path}: {e}")
            raise DataDestinationError(f"Journal write error: {e}")

    def upsert(self, record: TradeRecord):
        records = self.get_all()
        for i, current in enumerate(records):
            if current.id == record.id:
                records[i] = record
                break
        else:
            records.insert(0, record)
        self.save_all(records)

    def delete(self, record_id: str) -> bool:
        records = self.get_all()
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            return False
        self.save_all(remaining)
        return True

    def export_json(self, path: str):
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(JournalMapper.to_payload(self.get_all()), f, ensure_ascii=False, indent=2)
        except OSError as e:
            raise DataDestinationError(f"JSON export error: {e}")
        logger.info(f"Exported journal to {path}")

    def import_json(self, path: str) -> Tuple[int, int]:
        """
        合併匯入檔。
        - 新 id: 直接加入
        - 既有 id: 匯入檔的 updatedAt 較新時才覆蓋
        回傳 (新增筆數, 更新筆數)。
        """
        payload = self._read_payload(Path(path))
        if not isinstance(payload, dict) or payload.get("version") != EXPORT_VERSION \
                or not isinstance(payload.get("records"), list):
            raise DataSourceError("Invalid import file (version 1 with a records array is required)")

        incoming = self._parse_records(payload["records"])
        merged: Dict[str, TradeRecord] = {r.id: r for r in self.get_all()}
        added = 0
        updated = 0

        for record in incoming:
            current = merged.get(record.id)
            if current is None:
                merged[record.id] = record
                added += 1
            elif self._is_newer(record, current):
                merged[record.id] = record
                updated += 1

        self.save_all(sort_by_entry_desc(list(merged.values())))
        logger.info(f"Imported {path}: added {added}, updated {updated}")
        return added, updated

    @staticmethod
    def _is_newer(incoming: TradeRecord, current: TradeRecord) -> bool:
        try:
            return incoming.updated_at > current.updated_at
        except TypeError:
            # naive 與 aware 的 datetime 無法比較，視為無法判斷
            return False

    def export_csv(self, path: str):
        try:
            with open(path, "w", encoding="utf-8", newline="") as f:
                writer = csv.writer(f, lineterminator="\n")
                writer.writerow(CSV_COLUMNS)
                for record in self.get_all():
                    writer.writerow(JournalMapper.to_csv_row(record))
        except OSError as e:
            raise DataDestinationError(f"CSV export error: {e}")
        logger.info(f"Exported CSV to {path}")
