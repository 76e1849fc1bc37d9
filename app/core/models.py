from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterator, Optional, Tuple

from app.core.indicators import MarketFingerprint

DEFAULT_SYMBOL = "nk225mc"
DEFAULT_TIMEFRAME = "1時間"
DEFAULT_TRADE_TYPE = "real"
DEFAULT_MIN_WIN_RATE = 30.0
EXPECTED_MOVE_UNIT = "円"


class Direction(str, Enum):
    LONG = "long"
    SHORT = "short"
    FLAT = "flat"


@dataclass(frozen=True)
class TradeEntry:
    """
    進場資訊 (計畫中的交易)。
    同時作為判斷引擎的候選交易，以及已儲存紀錄的進場部分。
    """
    datetime_entry: Optional[datetime] = None
    symbol: str = DEFAULT_SYMBOL          # 商品 (e.g., "nk225mc")
    timeframe: str = DEFAULT_TIMEFRAME    # 週期 (e.g., "1時間")
    trade_type: str = DEFAULT_TRADE_TYPE  # real / virtual
    direction_planned: Direction = Direction.LONG

    entry_price: Optional[float] = None
    size: Optional[float] = None          # 口數
    fee_per_unit: Optional[float] = None  # 每口手續費

    # 計畫價位 (選填)
    planned_stop_price: Optional[float] = None
    planned_limit_price: Optional[float] = None
    cut_loss_price: Optional[float] = None

    fingerprint: MarketFingerprint = field(default_factory=MarketFingerprint)

    # 最低勝率門檻 (%)
    min_win_rate: Optional[float] = DEFAULT_MIN_WIN_RATE

    market_memo: str = ""
    notion_url: str = ""
    image_data: Optional[str] = None


# 送進判斷引擎的候選交易就是進場資訊本身
CandidateTrade = TradeEntry


@dataclass(frozen=True)
class TradeOutcome:
    """出場結果"""
    has_result: bool = False
    datetime_exit: Optional[datetime] = None
    exit_price: Optional[float] = None
    direction_taken: Optional[Direction] = None
    high_during_trade: Optional[float] = None
    low_during_trade: Optional[float] = None
    profit: Optional[float] = None
    result_memo: str = ""


@dataclass(frozen=True)
class DirectionStats:
    """單一方向的歷史績效"""
    n: int = 0
    win_rate: Optional[float] = None       # %
    avg_profit: Optional[float] = None     # 獲利交易的平均損益
    avg_loss: Optional[float] = None       # 虧損交易的平均損益 (負值)
    expected_move: Optional[float] = None  # 平均順向波動 (價格單位)

    @property
    def expected_value(self) -> float:
        avg_profit = self.avg_profit if self.avg_profit is not None else 0.0
        avg_loss = self.avg_loss if self.avg_loss is not None else 0.0
        return avg_profit + avg_loss


@dataclass(frozen=True)
class StatsByDirection:
    long: DirectionStats = field(default_factory=DirectionStats)
    short: DirectionStats = field(default_factory=DirectionStats)
    flat: DirectionStats = field(default_factory=DirectionStats)

    def __getitem__(self, direction: Direction) -> DirectionStats:
        return getattr(self, Direction(direction).value)

    def items(self) -> Iterator[Tuple[Direction, DirectionStats]]:
        for direction in Direction:
            yield direction, self[direction]


@dataclass(frozen=True)
class Judgment:
    """判斷結果 (建議方向、信心分數等)"""
    recommendation: Direction
    expected_move: Optional[float]
    confidence: float
    win_rate: Optional[float]
    avg_profit: Optional[float]
    avg_loss: Optional[float]
    pseudo_case_count: int
    min_win_rate: float
    expected_move_unit: str = EXPECTED_MOVE_UNIT
    # 勝率低於門檻而被改成 flat
    gated: bool = False


@dataclass(frozen=True)
class JudgmentSnapshot:
    """
    儲存當下凍結的判斷結果，之後不會重新計算。
    舊資料可能整組缺漏。
    """
    recommendation: Optional[Direction] = None
    expected_move: Optional[float] = None
    expected_move_unit: str = EXPECTED_MOVE_UNIT
    confidence: Optional[float] = None
    win_rate: Optional[float] = None
    avg_profit: Optional[float] = None
    avg_loss: Optional[float] = None
    pseudo_case_count: Optional[int] = None

    @classmethod
    def from_judgment(cls, judgment: Judgment) -> "JudgmentSnapshot":
        return cls(
            recommendation=judgment.recommendation,
            expected_move=judgment.expected_move,
            expected_move_unit=judgment.expected_move_unit,
            confidence=judgment.confidence,
            win_rate=judgment.win_rate,
            avg_profit=judgment.avg_profit,
            avg_loss=judgment.avg_loss,
            pseudo_case_count=judgment.pseudo_case_count,
        )


@dataclass(frozen=True)
class TradeRecord:
    """
    交易紀錄 (Domain Model)。
    包含進場資訊、判斷快照與出場結果。
    id 與 created_at 建立後不再變動。
    """
    id: str
    created_at: datetime
    updated_at: datetime
    entry: TradeEntry
    snapshot: JudgmentSnapshot = field(default_factory=JudgmentSnapshot)
    outcome: TradeOutcome = field(default_factory=TradeOutcome)

    @property
    def symbol(self) -> str:
        return self.entry.symbol

    @property
    def timeframe(self) -> str:
        return self.entry.timeframe

    @property
    def fingerprint(self) -> MarketFingerprint:
        return self.entry.fingerprint

    @property
    def has_result(self) -> bool:
        return self.outcome.has_result

    @property
    def profit(self) -> Optional[float]:
        return self.outcome.profit

    @property
    def direction(self) -> Direction:
        """實際方向 (未設定時沿用計畫方向)"""
        return self.outcome.direction_taken or self.entry.direction_planned

    def is_profit(self) -> bool:
        return self.profit is not None and self.profit > 0
