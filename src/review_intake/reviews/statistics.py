"""评分统计。"""

import math
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from ..models.review import RatingStatistics


def _round_half_up(value: float, places: str = "0.01") -> float:
    # 按浮点数的精确值进位，4.125 计为 4.13
    return float(Decimal(value).quantize(Decimal(places), rounding=ROUND_HALF_UP))


def compute_rating_statistics(ratings: Iterable[float | None]) -> RatingStatistics:
    """计算评论总数、平均分（两位小数）与 1-5 星分布。

    空评分按 0 计入平均值；四舍五入后不在 1-5 之间的评分不计入分布。
    """
    values = [r or 0.0 for r in ratings]
    total = len(values)
    average = sum(values) / total if total else 0.0

    distribution = dict.fromkeys(range(1, 6), 0)
    for value in values:
        # 半数向上取整，2.5 计为 3 星
        stars = math.floor(value + 0.5)
        if 1 <= stars <= 5:
            distribution[stars] += 1

    return RatingStatistics(
        total_reviews=total,
        average_rating=_round_half_up(average),
        rating_distribution=distribution,
    )
