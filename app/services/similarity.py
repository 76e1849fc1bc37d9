from app.core.indicators import FINGERPRINT_FIELDS, MarketFingerprint


def similarity(historical: MarketFingerprint, candidate: MarketFingerprint) -> float:
    """
    盤勢指紋相似度 = 完全相同的指標數 / 11。
    只看是否相等，不給「接近」的部分分數；兩邊都未設定也算相同。
    """
    matches = sum(
        1 for name in FINGERPRINT_FIELDS
        if getattr(historical, name) == getattr(candidate, name)
    )
    return matches / len(FINGERPRINT_FIELDS)
