from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional, Tuple

from app.config.logging import logger
from app.core.exceptions import EntryValidationError, RecordNotFoundError
from app.core.models import (
    DEFAULT_MIN_WIN_RATE,
    Judgment,
    JudgmentSnapshot,
    TradeEntry,
    TradeOutcome,
    TradeRecord,
)
from app.infrastructure.journal.mapper import new_record_id, now_utc
from app.infrastructure.journal.store import JsonRecordStore, sort_by_entry_desc
from app.services import judgment as engine
from app.services.profit import compute_profit


@dataclass(frozen=True)
class ExitInput:
    """出場表單的輸入值"""
    datetime_exit: Optional[datetime] = None
    exit_price: Optional[float] = None
    high_during_trade: Optional[float] = None
    low_during_trade: Optional[float] = None
    result_memo: str = ""


def validate_entry(entry: TradeEntry) -> Optional[str]:
    """回傳第一個缺漏欄位的訊息，沒有缺漏則回傳 None"""
    if entry.datetime_entry is None:
        return "エントリー日時は必須です。"
    if entry.entry_price is None:
        return "エントリー価格は必須です。"
    if entry.size is None:
        return "枚数は必須です。"
    if entry.fee_per_unit is None:
        return "1枚あたりの手数料は必須です。"
    return None


class JournalService:
    """
    負責交易日誌的主要流程：判斷、儲存進場、紀錄出場、刪除。
    目前選取中的紀錄由呼叫端 (CLI) 自行管理，這裡不保存任何狀態。
    """

    def __init__(self, store: JsonRecordStore):
        self.store = store

    def _require(self, record_id: str) -> TradeRecord:
        record = self.store.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    def list_records(self) -> List[TradeRecord]:
        return sort_by_entry_desc(self.store.get_all())

    def judge(self, entry: TradeEntry, records: Optional[List[TradeRecord]] = None) -> Judgment:
        error = validate_entry(entry)
        if error:
            raise EntryValidationError(error)
        history = records if records is not None else self.store.get_all()
        return engine.judge(entry, history)

    def save_entry(self, entry: TradeEntry, record_id: Optional[str] = None) -> TradeRecord:
        record, _ = self.record_entry(entry, record_id)
        return record

    def record_entry(
        self, entry: TradeEntry, record_id: Optional[str] = None
    ) -> Tuple[TradeRecord, Judgment]:
        """
        判斷後儲存進場資訊，並凍結當下的判斷結果。
        - record_id 為 None: 新增紀錄
        - record_id 指定時: 覆寫該紀錄 (保留 id、created_at 與附加圖片)
        儲存進場時出場欄位會重設，實際方向回到計畫方向。
        """
        records = self.store.get_all()
        existing = None
        if record_id is not None:
            existing = next((r for r in records if r.id == record_id), None)
            if existing is None:
                raise RecordNotFoundError(record_id)

        judgment = self.judge(entry, records)
        if entry.min_win_rate is None:
            entry = replace(entry, min_win_rate=DEFAULT_MIN_WIN_RATE)
        if existing and entry.image_data is None:
            entry = replace(entry, image_data=existing.entry.image_data)

        now = now_utc()
        record = TradeRecord(
            id=existing.id if existing else new_record_id(),
            created_at=existing.created_at if existing else now,
            updated_at=now,
            entry=entry,
            snapshot=JudgmentSnapshot.from_judgment(judgment),
            outcome=TradeOutcome(direction_taken=entry.direction_planned),
        )
        self.store.upsert(record)

        action = "Updated" if existing else "Saved"
        logger.info(
            f"{action} entry {record.id}: {entry.symbol} / {entry.timeframe} "
            f"-> {judgment.recommendation.value} ({judgment.pseudo_case_count} cases)"
        )
        return record, judgment

    def preview_profit(self, record_id: str, exit_price: Optional[float]) -> Optional[float]:
        """出場價輸入中的即時損益試算 (不儲存)"""
        record = self._require(record_id)
        return compute_profit(
            record.symbol,
            record.direction,
            record.entry.entry_price,
            exit_price,
            record.entry.fee_per_unit,
            record.entry.size,
        )

    def record_exit(self, record_id: str, exit_input: ExitInput) -> TradeRecord:
        """
        紀錄出場結果並計算損益。
        出場時間與出場價都有值時才算「已出場」。
        """
        record = self._require(record_id)
        profit = compute_profit(
            record.symbol,
            record.direction,
            record.entry.entry_price,
            exit_input.exit_price,
            record.entry.fee_per_unit,
            record.entry.size,
        )

        outcome = TradeOutcome(
            has_result=bool(exit_input.datetime_exit and exit_input.exit_price is not None),
            datetime_exit=exit_input.datetime_exit,
            exit_price=exit_input.exit_price,
            direction_taken=record.direction,
            high_during_trade=exit_input.high_during_trade,
            low_during_trade=exit_input.low_during_trade,
            profit=profit,
            result_memo=exit_input.result_memo,
        )
        updated = replace(record, outcome=outcome, updated_at=now_utc())
        self.store.upsert(updated)

        logger.info(f"Saved exit for {record_id}: profit={profit}")
        return updated

    def delete_record(self, record_id: str):
        if not self.store.delete(record_id):
            raise RecordNotFoundError(record_id)
        logger.info(f"Deleted record {record_id}")
