import math
from dataclasses import replace

import pytest

from app.core.indicators import AtrZone, MacdState, PrevWave, RsiZone, Sign
from app.core.models import Direction, DirectionStats, StatsByDirection
from app.services import judgment as engine


def _far(fingerprint, n_changes):
    """Return a fingerprint differing from `fingerprint` in the first n fields."""
    changes = [
        ("prev_wave", PrevWave.LL),
        ("zone", AtrZone.LOWER2),
        ("macd_state", MacdState.DEAD_CROSS),
        ("rsi_zone", RsiZone.OVERSOLD),
        ("cmf_sign", Sign.NEGATIVE),
    ]
    return replace(fingerprint, **dict(changes[:n_changes]))


def test_no_history_for_symbol_and_timeframe(make_entry, make_record):
    history = [
        make_record(symbol="nk225m"),
        make_record(timeframe="5分"),
    ]
    j = engine.judge(make_entry(), history)

    assert j.recommendation == Direction.FLAT
    assert j.pseudo_case_count == 0
    assert j.confidence == 0
    assert j.win_rate is None
    assert j.expected_move is None
    assert j.avg_profit is None and j.avg_loss is None
    assert j.min_win_rate == 30


def test_select_pseudo_cases_eligibility(make_entry, make_record, default_fingerprint):
    keep = make_record(profit=50.0)
    history = [
        keep,
        make_record(has_result=False),
        make_record(profit=None),
        make_record(profit=math.nan),
        make_record(symbol="nk225"),
        make_record(timeframe="日足"),
    ]
    assert engine.select_pseudo_cases(history, make_entry()) == [keep]


def test_select_pseudo_cases_similarity_threshold(make_entry, make_record, default_fingerprint):
    three_off = make_record(fingerprint=_far(default_fingerprint, 3))  # 8/11 = 0.727
    four_off = make_record(fingerprint=_far(default_fingerprint, 4))   # 7/11 = 0.636
    exact = make_record()

    cases = engine.select_pseudo_cases([three_off, four_off, exact], make_entry())

    assert cases == [exact, three_off]
    candidate = make_entry()
    for case in cases:
        assert case.symbol == candidate.symbol and case.timeframe == candidate.timeframe


def test_score_cases_is_stable_for_ties(make_entry, make_record):
    a, b, c = make_record(), make_record(), make_record()
    scored = engine.score_cases([a, b, c], make_entry())
    assert [r for r, _ in scored] == [a, b, c]


def test_aggregate_groups_by_direction(make_record):
    cases = [
        make_record(profit=100.0, high=1030.0),
        make_record(profit=-40.0, high=990.0),
        make_record(profit=0.0, high=1010.0),
        make_record(profit=60.0, direction=Direction.SHORT, low=980.0),
        make_record(profit=-20.0, direction=Direction.LONG, direction_taken=Direction.FLAT),
    ]
    stats = engine.aggregate(cases)

    long_stats = stats[Direction.LONG]
    assert long_stats.n == 3
    assert long_stats.win_rate == pytest.approx(100 / 3)
    assert long_stats.avg_profit == 100.0
    assert long_stats.avg_loss == -40.0
    # max(0, 30), max(0, -10), max(0, 10)
    assert long_stats.expected_move == pytest.approx(40 / 3)
    assert long_stats.expected_value == 60.0

    short_stats = stats[Direction.SHORT]
    assert short_stats.n == 1
    assert short_stats.win_rate == 100.0
    assert short_stats.avg_loss is None
    assert short_stats.expected_move == 20.0
    assert short_stats.expected_value == 60.0

    flat_stats = stats[Direction.FLAT]
    assert flat_stats.n == 1
    assert flat_stats.expected_move is None
    assert flat_stats.win_rate == 0.0


def test_aggregate_falls_back_to_planned_direction(make_record):
    record = make_record(profit=10.0, direction=Direction.SHORT)
    record = replace(record, outcome=replace(record.outcome, direction_taken=None))

    stats = engine.aggregate([record])
    assert stats.short.n == 1
    assert stats.long.n == 0


def test_aggregate_expected_move_skips_missing_prices(make_record):
    stats = engine.aggregate([make_record(high=None), make_record(high=1020.0)])
    assert stats.long.expected_move == 20.0

    stats = engine.aggregate([make_record(high=None)])
    assert stats.long.expected_move is None


def test_aggregate_empty_direction():
    stats = engine.aggregate([])
    for _, s in stats.items():
        assert s.n == 0
        assert s.win_rate is None
        assert s.expected_value == 0.0


def test_five_long_cases_pass_the_gate(make_entry, make_record):
    history = [make_record(profit=p, high=1020.0) for p in (100.0, 80.0, 120.0, 90.0, -50.0)]

    j = engine.judge(make_entry(min_win_rate=30), history)
    assert j.recommendation == Direction.LONG
    assert j.win_rate == 80.0
    assert j.expected_move == 20.0
    assert j.avg_profit == pytest.approx(97.5)
    assert j.avg_loss == -50.0
    assert j.pseudo_case_count == 5
    assert j.confidence == pytest.approx(engine.confidence_score(80.0, 5))


def test_five_long_cases_gated_to_flat(make_entry, make_record):
    history = [make_record(profit=p, high=1020.0) for p in (100.0, 80.0, 120.0, 90.0, -50.0)]

    j = engine.judge(make_entry(min_win_rate=90), history)
    assert j.recommendation == Direction.FLAT
    assert j.win_rate is None
    assert j.expected_move is None
    assert j.avg_profit is None and j.avg_loss is None
    assert j.pseudo_case_count == 5
    assert j.min_win_rate == 90
    assert j.gated is True
    # 信心分數使用門檻判斷前的勝率
    assert j.confidence == pytest.approx(engine.confidence_score(80.0, 5))


def test_win_rate_equal_to_threshold_is_not_gated(make_entry, make_record):
    history = [make_record(profit=p) for p in (100.0, -10.0)]
    j = engine.judge(make_entry(min_win_rate=50), history)
    assert j.recommendation == Direction.LONG
    assert j.gated is False


def test_higher_expected_value_wins_over_win_rate_tie():
    stats = StatsByDirection(
        long=DirectionStats(n=2, win_rate=50.0, avg_profit=100.0, avg_loss=-150.0),
        short=DirectionStats(n=2, win_rate=50.0, avg_profit=70.0, avg_loss=-50.0),
    )
    assert stats.long.expected_value == -50.0
    assert stats.short.expected_value == 20.0

    j = engine.select(stats, 30.0, 4)
    assert j.recommendation == Direction.SHORT
    assert j.win_rate == 50.0
    assert j.avg_profit == 70.0


def test_compare_directions_tie_breaks():
    by_ev = (DirectionStats(n=1, win_rate=0.0, avg_loss=-1.0), DirectionStats(n=5, win_rate=100.0, avg_profit=2.0))
    assert engine.compare_directions(*by_ev) == 1

    by_win_rate = (DirectionStats(n=3, win_rate=66.0, avg_profit=10.0, avg_loss=-10.0),
                   DirectionStats(n=3, win_rate=33.0, avg_profit=10.0, avg_loss=-10.0))
    assert engine.compare_directions(*by_win_rate) == -1

    by_count = (DirectionStats(n=2, win_rate=50.0, avg_profit=10.0, avg_loss=-10.0),
                DirectionStats(n=4, win_rate=50.0, avg_profit=10.0, avg_loss=-10.0))
    assert engine.compare_directions(*by_count) == 1

    same = DirectionStats(n=2, win_rate=50.0, avg_profit=10.0)
    assert engine.compare_directions(same, same) == 0


def test_compare_directions_empty_sample_ranks_last():
    empty = DirectionStats()
    losing = DirectionStats(n=1, win_rate=0.0, avg_loss=-500.0)
    assert engine.compare_directions(empty, losing) == 1
    assert engine.compare_directions(losing, empty) == -1


def test_only_flat_cases_recommend_flat(make_entry, make_record):
    history = [make_record(profit=50.0, direction_taken=Direction.FLAT) for _ in range(3)]
    j = engine.judge(make_entry(), history)

    assert j.recommendation == Direction.FLAT
    assert j.win_rate is None
    assert j.gated is False
    assert j.pseudo_case_count == 3
    assert j.confidence == pytest.approx(engine.confidence_score(None, 3))


def test_only_short_losses_gives_negative_ev_but_still_selected(make_entry, make_record):
    history = [make_record(profit=-30.0, direction=Direction.SHORT, low=990.0)]
    judgment, stats = engine.evaluate(make_entry(min_win_rate=0), history)

    assert stats.short.expected_value == -30.0
    assert judgment.recommendation == Direction.SHORT
    assert judgment.win_rate == 0.0
    assert judgment.expected_move == 10.0


def test_evaluate_returns_no_stats_without_cases(make_entry):
    judgment, stats = engine.evaluate(make_entry(), [])
    assert stats is None
    assert judgment.pseudo_case_count == 0


def test_min_win_rate_falls_back_to_default(make_entry):
    assert engine.judge(make_entry(min_win_rate=None), []).min_win_rate == 30.0
    assert engine.judge(make_entry(min_win_rate=math.nan), []).min_win_rate == 30.0
    assert engine.judge(make_entry(min_win_rate=45), [], min_win_rate=60).min_win_rate == 60


def test_confidence_formula():
    # 0.8 * 0.7 + (log10(6) / 1.2) * 0.3
    expected = (0.8 * 0.7 + (math.log10(6) / 1.2) * 0.3) * 100
    assert engine.confidence_score(80.0, 5) == pytest.approx(expected)
    assert engine.confidence_score(100.0, 1000) == 100.0
    assert engine.confidence_score(None, 0) == 0.0


def test_confidence_is_monotonic_and_bounded():
    counts = [0, 1, 2, 5, 10, 15, 50, 500]
    rates = [None, 0.0, 10.0, 30.0, 55.5, 80.0, 100.0]
    for count in counts:
        scores = [engine.confidence_score(r, count) for r in rates]
        assert scores == sorted(scores)
        assert all(0.0 <= s <= 100.0 for s in scores)
    for rate in rates:
        scores = [engine.confidence_score(rate, c) for c in counts]
        assert scores == sorted(scores)
