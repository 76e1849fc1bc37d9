import math
from typing import Dict, List, Optional, Tuple

from app.core.models import Direction, Judgment, TradeRecord

DIRECTION_LABELS = {
    Direction.LONG: "ロング",
    Direction.SHORT: "ショート",
    Direction.FLAT: "ノーポジ",
}


def direction_label(direction: Optional[str]) -> str:
    if direction == Direction.LONG:
        return DIRECTION_LABELS[Direction.LONG]
    if direction == Direction.SHORT:
        return DIRECTION_LABELS[Direction.SHORT]
    return DIRECTION_LABELS[Direction.FLAT]


def format_yen(value: Optional[float]) -> str:
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return "—"
    return f"{round(value):,}円"


def _percent(value: Optional[float]) -> str:
    return "—" if value is None else f"{round(value)}%"


class ReportFormatter:
    @staticmethod
    def format_judgment(judgment: Judgment, symbol: str) -> str:
        """
        Formats a judgment result as plain text (CLI / Discord).
        """
        lines = [f"判定銘柄：{symbol}", f"疑似ケース：{judgment.pseudo_case_count}件"]

        if judgment.pseudo_case_count == 0:
            lines.append("同じ銘柄×同じ時間足の決済済みデータが不足しています。")
            return "\n".join(lines)

        if judgment.expected_move is None:
            expected = "—"
        else:
            sign = "-" if judgment.recommendation == Direction.SHORT else "+"
            expected = f"{sign}{round(judgment.expected_move)}{judgment.expected_move_unit}"

        lines.append(f"推奨方向：{direction_label(judgment.recommendation)}")
        lines.append(f"勝率：{_percent(judgment.win_rate)}")
        lines.append(f"信頼度：{_percent(judgment.confidence)}")
        lines.append(f"推定値幅：{expected}")
        lines.append(f"平均利益：{format_yen(judgment.avg_profit)}")
        lines.append(f"平均損失：{format_yen(judgment.avg_loss)}")
        if judgment.gated:
            lines.append(f"※ 勝率しきい値（{judgment.min_win_rate:g}%）未満のため「ノーポジ推奨」扱いです。")
        return "\n".join(lines)

    @staticmethod
    def format_stats(stats: Dict) -> str:
        lines = ["📊 統計"]
        lines.append(f"件数：{stats['count']}")
        lines.append(f"決済済み：{stats['closed_count']}")
        lines.append(f"勝率：{_percent(stats['win_rate'])}")
        lines.append(f"累積損益：{format_yen(stats['total_profit'])}")
        lines.append(f"平均利益（勝ちのみ）：{format_yen(stats['avg_profit'])}")
        lines.append(f"平均損失（負けのみ）：{format_yen(stats['avg_loss'])}")
        lines.append(f"最大連敗：{stats['max_consecutive_loss']}")
        lines.append(f"最大ドローダウン：{format_yen(stats['max_drawdown'])}")
        return "\n".join(lines)

    @staticmethod
    def format_series(
        cumulative: List[Tuple[str, float]],
        breakdown: Dict[Direction, Dict[str, float]],
        timeframe_win_rates: Dict[str, float],
    ) -> str:
        """累積損益・多空別・時間足別の集計 (原本圖表的資料)"""
        lines = ["📈 累積損益"]
        if cumulative:
            lines.extend(f"{label}  {format_yen(value)}" for label, value in cumulative)
        else:
            lines.append("決済済みの記録がありません。")

        lines.append("")
        lines.append("⚖️ ロング / ショート")
        for direction, values in breakdown.items():
            lines.append(
                f"{direction_label(direction)}：勝率 {_percent(values['win_rate'])} / "
                f"平均利益 {format_yen(values['avg_profit'])} / 平均損失 {format_yen(values['avg_loss'])}"
            )

        lines.append("")
        lines.append("⏱ 時間足別勝率")
        for timeframe, win_rate in timeframe_win_rates.items():
            lines.append(f"{timeframe}：{_percent(win_rate)}")
        return "\n".join(lines)

    @staticmethod
    def format_record_line(record: TradeRecord) -> str:
        status = "済" if record.has_result else "未"
        dt = record.entry.datetime_entry.isoformat(sep=" ", timespec="minutes") \
            if record.entry.datetime_entry else "—"
        profit = format_yen(record.profit) if record.has_result else "—"
        return (
            f"[{status}] {dt} / {record.symbol} / {record.timeframe} / "
            f"{direction_label(record.entry.direction_planned)} / {profit} / id:{record.id[:8]}"
        )

    @staticmethod
    def format_record_list(records: List[TradeRecord]) -> str:
        if not records:
            return "記録がありません。"
        return "\n".join(ReportFormatter.format_record_line(r) for r in records)
