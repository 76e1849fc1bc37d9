import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Tuple

from app.core.models import Direction, TradeRecord


@dataclass(frozen=True)
class RecordFilter:
    """統計頁的篩選條件，空值代表不篩選"""
    symbol: str = ""
    timeframe: str = ""
    trade_type: str = ""
    direction: str = ""
    result: str = ""                # "open" / "closed"
    start: Optional[date] = None    # 進場日 (含)
    end: Optional[date] = None      # 進場日 (含)


def _is_closed(record: TradeRecord) -> bool:
    profit = record.profit
    return record.has_result and isinstance(profit, (int, float)) and math.isfinite(profit)


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


class AnalyticsService:
    @staticmethod
    def apply_filters(records: List[TradeRecord], f: RecordFilter) -> List[TradeRecord]:
        result = []
        for r in records:
            if f.symbol and r.symbol != f.symbol:
                continue
            if f.timeframe and r.timeframe != f.timeframe:
                continue
            if f.trade_type and r.entry.trade_type != f.trade_type:
                continue
            if f.direction and r.direction != f.direction:
                continue

            if f.result == "open" and r.has_result:
                continue
            if f.result == "closed" and not r.has_result:
                continue

            # 沒有進場時間的紀錄不受日期篩選影響
            entry_date = r.entry.datetime_entry.date() if r.entry.datetime_entry else None
            if f.start and entry_date and entry_date < f.start:
                continue
            if f.end and entry_date and entry_date > f.end:
                continue

            result.append(r)
        return result

    @staticmethod
    def calculate_stats(records: List[TradeRecord]) -> Dict:
        """
        Calculate journal performance statistics.
        Only closed trades with a numeric profit count towards win rate and profit figures;
        they are assumed to be in chronological order for the streak and drawdown.
        """
        closed = [r for r in records if _is_closed(r)]
        profits = [r.profit for r in closed]

        wins = [p for p in profits if p > 0]
        losses = [p for p in profits if p < 0]

        # Max Consecutive Loss
        max_loss_streak = 0
        current_loss_streak = 0
        for p in profits:
            if p < 0:
                current_loss_streak += 1
            else:
                max_loss_streak = max(max_loss_streak, current_loss_streak)
                current_loss_streak = 0
        max_loss_streak = max(max_loss_streak, current_loss_streak)

        # Max Drawdown: decline from a historical peak in cumulative profit.
        current_equity = 0.0
        peak = 0.0
        max_dd = 0.0
        for p in profits:
            current_equity += p
            peak = max(peak, current_equity)
            max_dd = max(max_dd, peak - current_equity)

        return {
            "count": len(records),
            "closed_count": len(closed),
            "win_rate": (len(wins) / len(closed)) * 100 if closed else None,
            "total_profit": sum(profits),
            "avg_profit": _mean(wins),
            "avg_loss": _mean(losses),
            "max_consecutive_loss": max_loss_streak,
            "max_drawdown": -max_dd,  # Return as negative value for display
        }

    @staticmethod
    def cumulative_series(records: List[TradeRecord]) -> List[Tuple[str, float]]:
        """累積損益曲線 (依出場時間排序，沒有則用進場時間)"""
        def sort_key(r: TradeRecord) -> str:
            ts = r.outcome.datetime_exit or r.entry.datetime_entry
            return ts.isoformat() if ts else ""

        series = []
        cumulative = 0.0
        for r in sorted((r for r in records if _is_closed(r)), key=sort_key):
            label = sort_key(r).replace("T", " ")[:16] or "—"
            cumulative += r.profit
            series.append((label, cumulative))
        return series

    @staticmethod
    def direction_breakdown(records: List[TradeRecord]) -> Dict[Direction, Dict[str, float]]:
        """多空各自的勝率與平均盈虧 (沒有資料時為 0，方便畫圖)"""
        closed = [r for r in records if _is_closed(r)]
        breakdown = {}
        for direction in (Direction.LONG, Direction.SHORT):
            group = [r.profit for r in closed if r.direction == direction]
            wins = [p for p in group if p > 0]
            losses = [p for p in group if p < 0]
            breakdown[direction] = {
                "win_rate": (len(wins) / len(group)) * 100 if group else 0.0,
                "avg_profit": _mean(wins) or 0.0,
                "avg_loss": _mean(losses) or 0.0,
            }
        return breakdown

    @staticmethod
    def timeframe_win_rates(records: List[TradeRecord]) -> Dict[str, float]:
        counts: Dict[str, List[int]] = {}
        for r in records:
            if not _is_closed(r):
                continue
            bucket = counts.setdefault(r.timeframe or "—", [0, 0])
            bucket[0] += 1
            if r.profit > 0:
                bucket[1] += 1
        return {tf: (w / n) * 100 for tf, (n, w) in counts.items()}
