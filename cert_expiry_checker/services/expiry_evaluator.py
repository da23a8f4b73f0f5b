"""
证书过期判定服务
"""
from datetime import datetime, timezone, timedelta
from typing import Callable, Optional


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # 不带时区的时间按UTC处理
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def notification_threshold(not_after: datetime, window_days: int) -> datetime:
    """
    计算开始提醒的时间点：过期时间减去提醒天数

    Args:
        not_after: 证书过期时间
        window_days: 提前提醒天数

    Returns:
        datetime: UTC时间点
    """
    if window_days < 0:
        raise ValueError(f"提醒天数不能为负数: {window_days}")
    return _as_utc(not_after) - timedelta(days=window_days)


def should_notify(not_after: Optional[datetime], now: datetime, window_days: int) -> bool:
    """
    判断当前是否需要发送过期提醒

    以UTC日期为粒度比较，当天等于阈值日期时也提醒。
    时分秒不参与比较：过期时间距今 window_days 天零几个小时，
    只要阈值落在今天，仍然提醒；提醒天数为0时，当天过期的证书也会提醒。
    过期时间未知时不提醒，由证书获取失败事件单独上报。

    Args:
        not_after: 证书过期时间，None表示未知
        now: 当前时间
        window_days: 提前提醒天数

    Returns:
        bool: 是否需要提醒
    """
    if not_after is None:
        return False

    threshold = notification_threshold(not_after, window_days)
    return _as_utc(now).date() >= threshold.date()


class ExpiryEvaluator:
    """证书过期判定器"""

    def __init__(self, window_days: int = 30, clock: Optional[Clock] = None):
        """
        初始化过期判定器

        Args:
            window_days: 提前提醒天数，默认30天
            clock: 返回当前时间的函数，默认为UTC当前时间
        """
        if window_days < 0:
            raise ValueError(f"提醒天数不能为负数: {window_days}")
        self._window_days = int(window_days)
        self.clock = clock or utc_now

    @property
    def window_days(self) -> int:
        return self._window_days

    def now(self) -> datetime:
        return _as_utc(self.clock())

    def should_notify(self, not_after: Optional[datetime], now: Optional[datetime] = None) -> bool:
        """
        判断证书是否进入提醒期

        Args:
            not_after: 证书过期时间
            now: 当前时间，默认取 clock()

        Returns:
            bool: 是否需要提醒
        """
        return should_notify(not_after, now if now is not None else self.now(), self._window_days)

    def days_until_expiry(self, not_after: datetime, now: Optional[datetime] = None) -> int:
        """
        计算距离过期的天数（按UTC日期）

        Args:
            not_after: 过期时间
            now: 当前时间

        Returns:
            int: 剩余天数（负数表示已过期）
        """
        now = _as_utc(now if now is not None else self.now())
        return (_as_utc(not_after).date() - now.date()).days

    def is_expired(self, not_after: Optional[datetime], now: Optional[datetime] = None) -> bool:
        """
        判断证书是否已过期

        Args:
            not_after: 过期时间
            now: 当前时间

        Returns:
            bool: 是否已过期
        """
        if not_after is None:
            return False
        now = _as_utc(now if now is not None else self.now())
        return now > _as_utc(not_after)
