from dataclasses import dataclass, fields
from enum import Enum
from typing import Dict, Optional, Tuple


class PrevWave(str, Enum):
    """前一波的型態 (高點/低點的墊高或下移)"""
    HH = "HH"
    HL = "HL"
    LH = "LH"
    LL = "LL"


class TrendStage(str, Enum):
    """5/20/40 EMA 排列階段 (Stage1 ~ Stage6)"""
    STAGE1 = "Stage1"
    STAGE2 = "Stage2"
    STAGE3 = "Stage3"
    STAGE4 = "Stage4"
    STAGE5 = "Stage5"
    STAGE6 = "Stage6"


class PriceVsEma200(str, Enum):
    ABOVE = "above"
    BELOW = "below"


class EmaBandColor(str, Enum):
    GREEN = "green"
    RED = "red"
    NEUTRAL = "neutral"


class AtrZone(str, Enum):
    UPPER2 = "upper2"
    UPPER1 = "upper1"
    PIVOT = "pivot"
    LOWER1 = "lower1"
    LOWER2 = "lower2"


class Sign(str, Enum):
    """CMF / ROC 的正負號"""
    POSITIVE = "positive"
    NEAR_ZERO = "near_zero"
    NEGATIVE = "negative"


class SlopeDirection(str, Enum):
    """SMA 的斜率方向"""
    UP = "up"
    FLAT = "flat"
    DOWN = "down"


class MacdState(str, Enum):
    GOLDEN_CROSS = "golden_cross"
    BULLISH = "bullish"
    NEUTRAL = "neutral"
    BEARISH = "bearish"
    DEAD_CROSS = "dead_cross"


class RsiZone(str, Enum):
    OVERBOUGHT = "overbought"
    ABOVE50 = "above50"
    AROUND50 = "around50"
    BELOW50 = "below50"
    OVERSOLD = "oversold"


@dataclass(frozen=True)
class MarketFingerprint:
    """
    進場當下的盤勢指紋 (11 個分類指標)。
    None 代表「未設定」，比對時視為獨立的一個類別。
    """
    prev_wave: Optional[PrevWave] = PrevWave.HH
    trend_5_20_40: Optional[TrendStage] = TrendStage.STAGE3
    price_vs_ema200: Optional[PriceVsEma200] = PriceVsEma200.ABOVE
    ema_band_color: Optional[EmaBandColor] = EmaBandColor.NEUTRAL
    zone: Optional[AtrZone] = AtrZone.PIVOT
    cmf_sign: Optional[Sign] = Sign.NEAR_ZERO
    cmf_sma_dir: Optional[SlopeDirection] = SlopeDirection.FLAT
    macd_state: Optional[MacdState] = MacdState.NEUTRAL
    roc_sign: Optional[Sign] = Sign.NEAR_ZERO
    roc_sma_dir: Optional[SlopeDirection] = SlopeDirection.FLAT
    rsi_zone: Optional[RsiZone] = RsiZone.AROUND50

    def items(self) -> Tuple[Tuple[str, Optional[Enum]], ...]:
        return tuple((name, getattr(self, name)) for name in FINGERPRINT_FIELDS)


FINGERPRINT_FIELDS: Tuple[str, ...] = tuple(f.name for f in fields(MarketFingerprint))

FINGERPRINT_TYPES: Dict[str, type] = {
    "prev_wave": PrevWave,
    "trend_5_20_40": TrendStage,
    "price_vs_ema200": PriceVsEma200,
    "ema_band_color": EmaBandColor,
    "zone": AtrZone,
    "cmf_sign": Sign,
    "cmf_sma_dir": SlopeDirection,
    "macd_state": MacdState,
    "roc_sign": Sign,
    "roc_sma_dir": SlopeDirection,
    "rsi_zone": RsiZone,
}
