import math
from typing import Any, Optional

from app.core.models import Direction

# 每點價值 (日經 225 期貨: 微型 10 倍、迷你 100 倍、大型 1000 倍)
SYMBOL_MULTIPLIERS = {
    "nk225mc": 10,
    "nk225m": 100,
    "nk225": 1000,
}


def symbol_multiplier(symbol: str) -> int:
    """未知商品一律視為 1 倍"""
    return SYMBOL_MULTIPLIERS.get(symbol, 1)


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def compute_profit(
    symbol: str,
    direction: str,
    entry_price: Optional[float],
    exit_price: Optional[float],
    fee_per_unit: Optional[float],
    size: Optional[float],
) -> Optional[float]:
    """
    計算已實現損益 (日圓)。
    公式: (±(出場價 - 進場價) - 每口手續費) × 口數 × 商品倍數
    任一數值缺漏或非有限數時回傳 None，不拋出例外。
    """
    if not all(_is_finite_number(v) for v in (entry_price, exit_price, fee_per_unit, size)):
        return None

    if direction == Direction.LONG:
        base_profit = exit_price - entry_price - fee_per_unit
    elif direction == Direction.SHORT:
        base_profit = entry_price - exit_price - fee_per_unit
    else:
        base_profit = 0.0

    final_profit = base_profit * size * symbol_multiplier(symbol)
    return final_profit if math.isfinite(final_profit) else None
