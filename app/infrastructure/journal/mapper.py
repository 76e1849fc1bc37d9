import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.core.indicators import FINGERPRINT_TYPES, MarketFingerprint
from app.core.models import (
    DEFAULT_MIN_WIN_RATE,
    DEFAULT_SYMBOL,
    DEFAULT_TIMEFRAME,
    DEFAULT_TRADE_TYPE,
    EXPECTED_MOVE_UNIT,
    Direction,
    JudgmentSnapshot,
    TradeEntry,
    TradeOutcome,
    TradeRecord,
)

EXPORT_VERSION = 1

# 指紋欄位在檔案中的鍵名
FINGERPRINT_KEYS = {
    "prev_wave": "prevWave",
    "trend_5_20_40": "trend_5_20_40",
    "price_vs_ema200": "price_vs_ema200",
    "ema_band_color": "ema_band_color",
    "zone": "zone",
    "cmf_sign": "cmf_sign",
    "cmf_sma_dir": "cmf_sma_dir",
    "macd_state": "macd_state",
    "roc_sign": "roc_sign",
    "roc_sma_dir": "roc_sma_dir",
    "rsi_zone": "rsi_zone",
}

# CSV 匯出欄位 (不含 imageData)
CSV_COLUMNS = [
    "id", "createdAt", "updatedAt",
    "datetimeEntry", "symbol", "timeframe", "tradeType", "directionPlanned",
    "entryPrice", "size", "feePerUnit", "plannedStopPrice", "plannedLimitPrice", "cutLossPrice",
    "prevWave", "trend_5_20_40", "price_vs_ema200", "ema_band_color", "zone",
    "cmf_sign", "cmf_sma_dir", "macd_state", "roc_sign", "roc_sma_dir", "rsi_zone",
    "minWinRate",
    "recommendation", "expectedMove", "expectedMoveUnit", "confidence", "winRate", "avgProfit", "avgLoss", "pseudoCaseCount",
    "hasResult", "datetimeExit", "exitPrice", "highDuringTrade", "lowDuringTrade", "profit",
    "marketMemo", "notionUrl", "resultMemo",
]


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    return str(uuid.uuid4())


def safe_num(value: Any) -> Optional[float]:
    """空值或非有限數 → None"""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    # JavaScript 的 toISOString() 以 "Z" 結尾
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _enum_value(value: Optional[Direction]) -> Optional[str]:
    return value.value if value is not None else None


class JournalMapper:
    """
    負責 TradeRecord 與檔案格式 (JSON / CSV) 之間的轉換。
    讀取時補齊舊資料缺少的欄位。
    """

    @staticmethod
    def fingerprint_from_dict(raw: Dict[str, Any]) -> MarketFingerprint:
        values = {}
        for name, key in FINGERPRINT_KEYS.items():
            value = raw.get(key)
            if value:
                values[name] = FINGERPRINT_TYPES[name](value)
        return MarketFingerprint(**values)

    @staticmethod
    def fingerprint_to_dict(fingerprint: MarketFingerprint) -> Dict[str, Optional[str]]:
        return {
            FINGERPRINT_KEYS[name]: (value.value if value is not None else None)
            for name, value in fingerprint.items()
        }

    @staticmethod
    def entry_from_dict(raw: Dict[str, Any]) -> TradeEntry:
        min_win_rate = safe_num(raw.get("minWinRate"))
        return TradeEntry(
            datetime_entry=parse_datetime(raw.get("datetimeEntry")),
            symbol=raw.get("symbol") or DEFAULT_SYMBOL,
            timeframe=raw.get("timeframe") or DEFAULT_TIMEFRAME,
            trade_type=raw.get("tradeType") or DEFAULT_TRADE_TYPE,
            direction_planned=Direction(raw.get("directionPlanned") or Direction.LONG.value),
            entry_price=safe_num(raw.get("entryPrice")),
            size=safe_num(raw.get("size")),
            fee_per_unit=safe_num(raw.get("feePerUnit")),
            planned_stop_price=safe_num(raw.get("plannedStopPrice")),
            planned_limit_price=safe_num(raw.get("plannedLimitPrice")),
            cut_loss_price=safe_num(raw.get("cutLossPrice")),
            fingerprint=JournalMapper.fingerprint_from_dict(raw),
            min_win_rate=min_win_rate if min_win_rate is not None else DEFAULT_MIN_WIN_RATE,
            market_memo=raw.get("marketMemo") or "",
            notion_url=raw.get("notionUrl") or "",
            image_data=raw.get("imageData"),
        )

    @staticmethod
    def to_record(raw: Dict[str, Any]) -> TradeRecord:
        """
        將檔案中的一筆資料轉為 TradeRecord。
        缺少的欄位以預設值補齊 (向下相容)。
        """
        entry = JournalMapper.entry_from_dict(raw)
        created_at = parse_datetime(raw.get("createdAt")) or now_utc()
        updated_at = parse_datetime(raw.get("updatedAt")) or created_at

        recommendation = raw.get("recommendation")
        pseudo_case_count = safe_num(raw.get("pseudoCaseCount"))
        snapshot = JudgmentSnapshot(
            recommendation=Direction(recommendation) if recommendation else None,
            expected_move=safe_num(raw.get("expectedMove")),
            expected_move_unit=raw.get("expectedMoveUnit") or EXPECTED_MOVE_UNIT,
            confidence=safe_num(raw.get("confidence")),
            win_rate=safe_num(raw.get("winRate")),
            avg_profit=safe_num(raw.get("avgProfit")),
            avg_loss=safe_num(raw.get("avgLoss")),
            pseudo_case_count=int(pseudo_case_count) if pseudo_case_count is not None else None,
        )

        direction_taken = raw.get("directionTaken")
        outcome = TradeOutcome(
            has_result=bool(raw.get("hasResult")),
            datetime_exit=parse_datetime(raw.get("datetimeExit")),
            exit_price=safe_num(raw.get("exitPrice")),
            direction_taken=Direction(direction_taken) if direction_taken else entry.direction_planned,
            high_during_trade=safe_num(raw.get("highDuringTrade")),
            low_during_trade=safe_num(raw.get("lowDuringTrade")),
            profit=safe_num(raw.get("profit")),
            result_memo=raw.get("resultMemo") or "",
        )

        return TradeRecord(
            id=str(raw.get("id") or new_record_id()),
            created_at=created_at,
            updated_at=updated_at,
            entry=entry,
            snapshot=snapshot,
            outcome=outcome,
        )

    @staticmethod
    def to_dict(record: TradeRecord) -> Dict[str, Any]:
        """TradeRecord → 檔案格式 (camelCase 鍵名，與舊版匯出檔相容)"""
        entry, snapshot, outcome = record.entry, record.snapshot, record.outcome
        data = {
            "id": record.id,
            "createdAt": format_datetime(record.created_at),
            "updatedAt": format_datetime(record.updated_at),

            "datetimeEntry": format_datetime(entry.datetime_entry),
            "symbol": entry.symbol,
            "timeframe": entry.timeframe,
            "tradeType": entry.trade_type,
            "directionPlanned": _enum_value(entry.direction_planned),
            "entryPrice": entry.entry_price,
            "size": entry.size,
            "feePerUnit": entry.fee_per_unit,
            "plannedStopPrice": entry.planned_stop_price,
            "plannedLimitPrice": entry.planned_limit_price,
            "cutLossPrice": entry.cut_loss_price,
        }
        data.update(JournalMapper.fingerprint_to_dict(entry.fingerprint))
        data.update({
            "minWinRate": entry.min_win_rate,
            "marketMemo": entry.market_memo,
            "notionUrl": entry.notion_url,
            "imageData": entry.image_data,

            "recommendation": _enum_value(snapshot.recommendation),
            "expectedMove": snapshot.expected_move,
            "expectedMoveUnit": snapshot.expected_move_unit,
            "confidence": snapshot.confidence,
            "winRate": snapshot.win_rate,
            "avgProfit": snapshot.avg_profit,
            "avgLoss": snapshot.avg_loss,
            "pseudoCaseCount": snapshot.pseudo_case_count,

            "hasResult": outcome.has_result,
            "datetimeExit": format_datetime(outcome.datetime_exit),
            "exitPrice": outcome.exit_price,
            "directionTaken": _enum_value(record.direction),
            "highDuringTrade": outcome.high_during_trade,
            "lowDuringTrade": outcome.low_during_trade,
            "profit": outcome.profit,
            "resultMemo": outcome.result_memo,
        })
        return data

    @staticmethod
    def to_payload(records: List[TradeRecord]) -> Dict[str, Any]:
        return {
            "version": EXPORT_VERSION,
            "records": [JournalMapper.to_dict(r) for r in records],
        }

    @staticmethod
    def csv_value(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)

    @staticmethod
    def to_csv_row(record: TradeRecord) -> List[str]:
        data = JournalMapper.to_dict(record)
        return [JournalMapper.csv_value(data.get(col)) for col in CSV_COLUMNS]
