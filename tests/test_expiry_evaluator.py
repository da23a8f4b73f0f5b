"""
证书过期判定器测试
"""
import pytest
from datetime import datetime, timezone, timedelta

from cert_expiry_checker.services.expiry_evaluator import (
    ExpiryEvaluator,
    notification_threshold,
    should_notify,
)


NOW = datetime(2024, 3, 1, 9, 30, 0, tzinfo=timezone.utc)


class TestShouldNotify:
    """提醒判定函数测试类"""

    def test_within_window(self):
        """测试过期时间在提醒期内"""
        not_after = datetime(2024, 3, 10, tzinfo=timezone.utc)

        assert should_notify(not_after, NOW, 10) is True

    def test_outside_window(self):
        """测试过期时间远在提醒期之外"""
        not_after = datetime(2024, 6, 1, tzinfo=timezone.utc)

        assert should_notify(not_after, NOW, 10) is False

    def test_threshold_crosses_leap_day(self):
        """测试闰年按日历天数相减"""
        not_after = datetime(2024, 3, 10, tzinfo=timezone.utc)

        assert notification_threshold(not_after, 10) == datetime(2024, 2, 29, tzinfo=timezone.utc)

    @pytest.mark.parametrize("window_days", [0, 1, 7, 10, 30, 90, 365])
    def test_boundary_is_inclusive(self, window_days):
        """测试当前时间恰好等于阈值时提醒"""
        not_after = NOW + timedelta(days=window_days)

        assert should_notify(not_after, NOW, window_days) is True

    @pytest.mark.parametrize("window_days", [0, 1, 7, 10, 30, 90, 365])
    def test_one_day_past_window_does_not_notify(self, window_days):
        """测试过期时间比提醒期多一天时不提醒"""
        not_after = NOW + timedelta(days=window_days + 1)

        assert should_notify(not_after, NOW, window_days) is False

    def test_time_of_day_not_significant(self):
        """测试只按日期比较，忽略时分秒"""
        not_after = datetime(2024, 3, 11, 23, 59, 59, tzinfo=timezone.utc)
        now = datetime(2024, 3, 1, 0, 0, 1, tzinfo=timezone.utc)

        assert should_notify(not_after, now, 10) is True

    def test_threshold_later_today_notifies(self):
        """测试阈值在今天稍晚时也提醒"""
        not_after = datetime(2024, 3, 11, 23, 30, 0, tzinfo=timezone.utc)
        now = datetime(2024, 3, 1, 23, 0, 0, tzinfo=timezone.utc)

        assert not_after - now > timedelta(days=10)
        assert should_notify(not_after, now, 10) is True
        assert should_notify(not_after, now - timedelta(days=1), 10) is False

    @pytest.mark.parametrize("window_days", [0, 10, 365])
    def test_unknown_expiry_never_notifies(self, window_days):
        """测试过期时间未知时不提醒"""
        assert should_notify(None, NOW, window_days) is False

    def test_zero_window_expires_today(self):
        """测试0天提醒期：当天过期时提醒"""
        not_after = datetime(2024, 3, 1, 23, 0, 0, tzinfo=timezone.utc)

        assert should_notify(not_after, NOW, 0) is True

    def test_zero_window_expires_tomorrow(self):
        """测试0天提醒期：明天过期时不提醒"""
        not_after = datetime(2024, 3, 2, 0, 30, 0, tzinfo=timezone.utc)

        assert should_notify(not_after, NOW, 0) is False

    def test_already_expired(self):
        """测试已过期证书总是提醒"""
        not_after = NOW - timedelta(days=40)

        assert should_notify(not_after, NOW, 0) is True
        assert should_notify(not_after, NOW, 30) is True

    def test_naive_datetimes_are_utc(self):
        """测试不带时区的时间按UTC处理"""
        not_after = datetime(2024, 3, 10)
        now = datetime(2024, 3, 1)

        assert should_notify(not_after, now, 10) is True
        assert should_notify(not_after, now, 8) is False

    def test_other_timezone_normalised(self):
        """测试其他时区的时间先转换为UTC"""
        tz = timezone(timedelta(hours=-5))
        # UTC 2024-03-11 02:00
        not_after = datetime(2024, 3, 10, 21, 0, 0, tzinfo=tz)

        assert should_notify(not_after, NOW, 9) is False
        assert should_notify(not_after, NOW, 10) is True

    def test_negative_window_rejected(self):
        """测试负数提醒天数"""
        with pytest.raises(ValueError):
            should_notify(NOW, NOW, -1)

    def test_pure_function(self):
        """测试相同输入得到相同结果"""
        not_after = datetime(2024, 3, 10, tzinfo=timezone.utc)

        results = {should_notify(not_after, NOW, 10) for _ in range(5)}

        assert results == {True}


class TestExpiryEvaluator:
    """证书过期判定器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.evaluator = ExpiryEvaluator(window_days=10, clock=lambda: NOW)

    def test_window_days(self):
        """测试提醒天数"""
        assert self.evaluator.window_days == 10
        assert ExpiryEvaluator().window_days == 30

    def test_negative_window_rejected(self):
        """测试负数提醒天数"""
        with pytest.raises(ValueError):
            ExpiryEvaluator(window_days=-3)

    def test_uses_injected_clock(self):
        """测试使用注入的时钟"""
        assert self.evaluator.now() == NOW
        assert self.evaluator.should_notify(datetime(2024, 3, 10, tzinfo=timezone.utc)) is True
        assert self.evaluator.should_notify(datetime(2024, 6, 1, tzinfo=timezone.utc)) is False

    def test_explicit_now_overrides_clock(self):
        """测试显式传入当前时间"""
        not_after = datetime(2024, 6, 1, tzinfo=timezone.utc)

        assert self.evaluator.should_notify(not_after, now=datetime(2024, 5, 25, tzinfo=timezone.utc)) is True

    def test_unknown_expiry(self):
        """测试过期时间未知"""
        assert self.evaluator.should_notify(None) is False
        assert self.evaluator.is_expired(None) is False

    def test_days_until_expiry(self):
        """测试计算距离过期的天数"""
        assert self.evaluator.days_until_expiry(datetime(2024, 3, 10, tzinfo=timezone.utc)) == 9
        assert self.evaluator.days_until_expiry(datetime(2024, 3, 1, 23, 0, tzinfo=timezone.utc)) == 0
        assert self.evaluator.days_until_expiry(datetime(2024, 2, 25, tzinfo=timezone.utc)) == -5

    def test_is_expired(self):
        """测试已过期判断"""
        assert self.evaluator.is_expired(NOW - timedelta(seconds=1)) is True
        assert self.evaluator.is_expired(NOW + timedelta(days=1)) is False

    def test_default_clock_is_current_time(self):
        """测试默认时钟返回当前UTC时间"""
        evaluator = ExpiryEvaluator(window_days=30)

        now = evaluator.now()

        assert now.tzinfo == timezone.utc
        assert abs(datetime.now(timezone.utc) - now) < timedelta(minutes=1)
        assert evaluator.should_notify(now + timedelta(days=15)) is True
        assert evaluator.should_notify(now + timedelta(days=60)) is False
