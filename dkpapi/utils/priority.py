"""Priority ratio used for leaderboard standing."""

from typing import Optional

PRIORITY_RATIO_PRECISION = 4


def compute_priority_ratio(earned_total: int, spent_total: int) -> Optional[float]:
    """획득/사용 비율. 사용 내역이 없으면 None (uncapped)."""
    if spent_total <= 0:
        return None
    return round(earned_total / spent_total, PRIORITY_RATIO_PRECISION)
