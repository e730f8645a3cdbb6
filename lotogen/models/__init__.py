"""ORM models."""

from lotogen.models.lottery_number import LotteryNumber
from lotogen.models.number_statistic import NumberStatistic

__all__ = ["LotteryNumber", "NumberStatistic"]
