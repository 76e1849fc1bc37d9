from typing import Any, Dict, Optional
from app.core.models import TradeRecord


def _number(value: Optional[float]) -> Dict[str, Any]:
    return {"number": float(value) if value is not None else None}


def _select(value: Optional[str]) -> Dict[str, Any]:
    return {"select": {"name": value} if value else None}


def _text(value: str) -> Dict[str, Any]:
    return {"rich_text": [{"text": {"content": value[:2000]}}] if value else []}


class NotionMapper:
    """
    負責將 TradeRecord 轉換為 Notion API 所需的 JSON 格式 (Properties)。
    """

    @staticmethod
    def record_title(record: TradeRecord) -> str:
        dt = record.entry.datetime_entry.strftime("%Y-%m-%d %H:%M") if record.entry.datetime_entry else "—"
        return f"{dt} {record.symbol} {record.timeframe} {record.entry.direction_planned.value}"

    @staticmethod
    def record_to_props(record: TradeRecord) -> Dict[str, Any]:
        """
        將 TradeRecord 轉為 Notion Database Properties。
        注意：欄位名稱必須與 Notion Database 一致。
        """
        entry, snapshot, outcome = record.entry, record.snapshot, record.outcome
        props = {
            "Name": {"title": [{"text": {"content": NotionMapper.record_title(record)}}]},
            "RecordID": _text(record.id),
            "Symbol": _select(entry.symbol),
            "Timeframe": _select(entry.timeframe),
            "Trade Type": _select(entry.trade_type),
            "Direction": _select(record.direction.value),
            "Entry Price": _number(entry.entry_price),
            "Size": _number(entry.size),
            "Fee": _number(entry.fee_per_unit),
            "Exit Price": _number(outcome.exit_price),
            "PnL": _number(outcome.profit),
            "Status": _select("closed" if outcome.has_result else "open"),
            "Recommendation": _select(snapshot.recommendation.value if snapshot.recommendation else None),
            "Confidence": _number(snapshot.confidence),
            "Win Rate": _number(snapshot.win_rate),
            "Pseudo Cases": _number(snapshot.pseudo_case_count),
            "Market Memo": _text(entry.market_memo),
            "Result Memo": _text(outcome.result_memo),
        }
        if entry.datetime_entry:
            props["Entry Date"] = {"date": {"start": entry.datetime_entry.isoformat()}}
        if outcome.datetime_exit:
            props["Exit Date"] = {"date": {"start": outcome.datetime_exit.isoformat()}}
        return props
