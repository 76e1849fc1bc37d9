"""
Recommendation (judgment) engine.

Finds closed trades on the same symbol and timeframe whose market fingerprint
is similar to the candidate, summarizes their outcomes per direction, and picks
a direction. Every function here is pure: the full record list is passed in on
each call and nothing is cached or mutated.
"""
import math
from functools import cmp_to_key
from typing import Iterable, List, Optional, Sequence, Tuple

from app.config.logging import logger
from app.core.models import (
    DEFAULT_MIN_WIN_RATE,
    CandidateTrade,
    Direction,
    DirectionStats,
    Judgment,
    StatsByDirection,
    TradeRecord,
)
from app.services.similarity import similarity

SIMILARITY_THRESHOLD = 0.70

WIN_RATE_WEIGHT = 0.7
SAMPLE_WEIGHT = 0.3
SAMPLE_LOG_SCALE = 1.2

SELECTABLE_DIRECTIONS = (Direction.LONG, Direction.SHORT)


def _clamp(value: float, min_val: float, max_val: float) -> float:
    return max(min_val, min(max_val, value))


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _mean(values: Sequence[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def resolve_min_win_rate(value: Optional[float]) -> float:
    if _is_number(value) and math.isfinite(value):
        return float(value)
    return DEFAULT_MIN_WIN_RATE


def no_data_judgment(min_win_rate: float) -> Judgment:
    """同商品、同週期沒有足夠相似的已出場資料時的結果"""
    return Judgment(
        recommendation=Direction.FLAT,
        expected_move=None,
        confidence=0.0,
        win_rate=None,
        avg_profit=None,
        avg_loss=None,
        pseudo_case_count=0,
        min_win_rate=min_win_rate,
    )


def is_eligible(record: TradeRecord, candidate: CandidateTrade) -> bool:
    profit = record.profit
    return (
        record.has_result
        and record.symbol == candidate.symbol
        and record.timeframe == candidate.timeframe
        and _is_number(profit)
        and math.isfinite(profit)
    )


def score_cases(records: Iterable[TradeRecord], candidate: CandidateTrade) -> List[Tuple[TradeRecord, float]]:
    """符合條件的紀錄與相似度，依相似度由高到低 (同分維持原順序)"""
    scored = [
        (record, similarity(record.fingerprint, candidate.fingerprint))
        for record in records
        if is_eligible(record, candidate)
    ]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored


def select_pseudo_cases(records: Iterable[TradeRecord], candidate: CandidateTrade) -> List[TradeRecord]:
    """挑出相似度 >= 0.70 的歷史交易 (疑似案例)"""
    return [
        record for record, score in score_cases(records, candidate)
        if score >= SIMILARITY_THRESHOLD
    ]


def _expected_move(direction: Direction, cases: Sequence[TradeRecord]) -> Optional[float]:
    # 價格單位，不乘商品倍數
    moves = []
    for case in cases:
        entry_price = case.entry.entry_price
        if not _is_number(entry_price):
            continue
        if direction == Direction.LONG:
            high = case.outcome.high_during_trade
            if _is_number(high):
                moves.append(max(0.0, high - entry_price))
        elif direction == Direction.SHORT:
            low = case.outcome.low_during_trade
            if _is_number(low):
                moves.append(max(0.0, entry_price - low))
    return _mean([m for m in moves if math.isfinite(m)])


def direction_stats(direction: Direction, cases: Sequence[TradeRecord]) -> DirectionStats:
    n = len(cases)
    wins = [c.profit for c in cases if c.profit > 0]
    losses = [c.profit for c in cases if c.profit < 0]

    return DirectionStats(
        n=n,
        win_rate=(len(wins) / n) * 100 if n else None,
        avg_profit=_mean(wins),
        avg_loss=_mean(losses),
        expected_move=_expected_move(direction, cases) if direction != Direction.FLAT else None,
    )


def aggregate(pseudo_cases: Sequence[TradeRecord]) -> StatsByDirection:
    """依實際方向分組，計算各方向的勝率、平均盈虧、預期波動"""
    grouped = {direction: [] for direction in Direction}
    for case in pseudo_cases:
        direction = case.direction
        if direction in grouped:
            grouped[direction].append(case)

    return StatsByDirection(
        long=direction_stats(Direction.LONG, grouped[Direction.LONG]),
        short=direction_stats(Direction.SHORT, grouped[Direction.SHORT]),
        flat=direction_stats(Direction.FLAT, grouped[Direction.FLAT]),
    )


def _or_neg_inf(value: Optional[float]) -> float:
    return value if value is not None else -math.inf


def compare_directions(a: DirectionStats, b: DirectionStats) -> int:
    """
    Ordering used to pick a direction: negative when `a` ranks first.

    1. higher expected value (no samples ranks last)
    2. higher win rate (None ranks last)
    3. larger sample count
    """
    keys_a = (
        a.expected_value if a.n > 0 else -math.inf,
        _or_neg_inf(a.win_rate),
        a.n,
    )
    keys_b = (
        b.expected_value if b.n > 0 else -math.inf,
        _or_neg_inf(b.win_rate),
        b.n,
    )
    for key_a, key_b in zip(keys_a, keys_b):
        if key_a != key_b:
            return -1 if key_a > key_b else 1
    return 0


def pick_direction(stats: StatsByDirection) -> Direction:
    choices = [d for d in SELECTABLE_DIRECTIONS if stats[d].n > 0]
    if not choices:
        return Direction.FLAT
    ranked = sorted(choices, key=cmp_to_key(lambda a, b: compare_directions(stats[a], stats[b])))
    return ranked[0]


def confidence_score(win_rate: Optional[float], pseudo_case_count: int) -> float:
    """勝率 70% + 樣本數 30% 的混合分數 (0 ~ 100)"""
    win_rate_fraction = (win_rate if win_rate is not None else 0.0) / 100
    sample_boost = _clamp(math.log10(pseudo_case_count + 1) / SAMPLE_LOG_SCALE, 0.0, 1.0)
    return _clamp((win_rate_fraction * WIN_RATE_WEIGHT + sample_boost * SAMPLE_WEIGHT) * 100, 0.0, 100.0)


def select(stats: StatsByDirection, min_win_rate: float, pseudo_case_count: int) -> Judgment:
    """
    Pick the recommended direction and apply the win-rate gate.

    A long/short pick whose win rate is below `min_win_rate` is reported as flat
    with its win rate dropped. Confidence is computed from the win rate of the
    picked direction before the gate.
    """
    candidate = pick_direction(stats)
    chosen = stats[candidate]

    win_rate = chosen.win_rate if candidate != Direction.FLAT else None
    gated = win_rate is not None and win_rate < min_win_rate
    confidence = confidence_score(win_rate, pseudo_case_count)

    if candidate == Direction.FLAT or gated:
        return Judgment(
            recommendation=Direction.FLAT,
            expected_move=None,
            confidence=confidence,
            win_rate=None,
            avg_profit=None,
            avg_loss=None,
            pseudo_case_count=pseudo_case_count,
            min_win_rate=min_win_rate,
            gated=gated,
        )

    return Judgment(
        recommendation=candidate,
        expected_move=chosen.expected_move,
        confidence=confidence,
        win_rate=win_rate,
        avg_profit=chosen.avg_profit,
        avg_loss=chosen.avg_loss,
        pseudo_case_count=pseudo_case_count,
        min_win_rate=min_win_rate,
    )


def evaluate(
    candidate: CandidateTrade,
    records: Iterable[TradeRecord],
    min_win_rate: Optional[float] = None,
) -> Tuple[Judgment, Optional[StatsByDirection]]:
    """Judgment plus the per-direction stats behind it (None when there were no cases)."""
    threshold = resolve_min_win_rate(candidate.min_win_rate if min_win_rate is None else min_win_rate)
    pseudo_cases = select_pseudo_cases(records, candidate)

    if not pseudo_cases:
        logger.debug(f"No pseudo cases for {candidate.symbol} / {candidate.timeframe}")
        return no_data_judgment(threshold), None

    stats = aggregate(pseudo_cases)
    judgment = select(stats, threshold, len(pseudo_cases))
    logger.debug(
        f"Judged {candidate.symbol} / {candidate.timeframe}: {judgment.recommendation.value} "
        f"from {len(pseudo_cases)} cases"
    )
    return judgment, stats


def judge(
    candidate: CandidateTrade,
    records: Iterable[TradeRecord],
    min_win_rate: Optional[float] = None,
) -> Judgment:
    judgment, _ = evaluate(candidate, records, min_win_rate)
    return judgment
