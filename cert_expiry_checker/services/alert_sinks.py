"""
告警接收端
"""
import threading
import logging
from typing import List, Optional

from ..interfaces import AlertSinkInterface
from ..models import AlertEvent, ExpiryWarning, FetchFailure


def format_event(event: AlertEvent) -> str:
    """
    生成单条告警文本

    Args:
        event: 告警事件

    Returns:
        str: 告警文本
    """
    if isinstance(event, ExpiryWarning):
        return (
            f"The SSL certification of {event.domain} "
            f"will be expired within {event.window_days} days"
        )
    return f"The SSL certification of {event.domain} can not be checked! {event.reason}"


class LoggingAlertSink(AlertSinkInterface):
    """把事件写入日志的接收端"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def emit_expiry_warning(self, event: ExpiryWarning):
        message = format_event(event)
        if event.expiry_date is not None:
            message += f" (过期时间: {event.expiry_date.isoformat()})"
        self.logger.warning(message)

    def emit_fetch_failure(self, event: FetchFailure):
        self.logger.error(format_event(event))


class BufferedAlertSink(AlertSinkInterface):
    """
    在内存中缓存事件的接收端

    多个工作线程可以同时写入；子类在 flush() 中把缓存的事件合并投递。
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._events: List[AlertEvent] = []

    def emit_expiry_warning(self, event: ExpiryWarning):
        with self._lock:
            self._events.append(event)

    def emit_fetch_failure(self, event: FetchFailure):
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[AlertEvent]:
        with self._lock:
            return list(self._events)

    @property
    def warnings(self) -> List[ExpiryWarning]:
        return [event for event in self.events if isinstance(event, ExpiryWarning)]

    @property
    def failures(self) -> List[FetchFailure]:
        return [event for event in self.events if isinstance(event, FetchFailure)]

    def clear(self):
        with self._lock:
            self._events = []

    def drain(self) -> List[AlertEvent]:
        """取出并清空缓存的事件"""
        with self._lock:
            events, self._events = self._events, []
        return events


class CompositeAlertSink(AlertSinkInterface):
    """把事件分发给多个接收端"""

    def __init__(self, *sinks: AlertSinkInterface):
        self.sinks = list(sinks)
        self.logger = logging.getLogger(__name__)

    def emit_expiry_warning(self, event: ExpiryWarning):
        for sink in self.sinks:
            sink.emit_expiry_warning(event)

    def emit_fetch_failure(self, event: FetchFailure):
        for sink in self.sinks:
            sink.emit_fetch_failure(event)

    def flush(self) -> bool:
        success = True
        for sink in self.sinks:
            try:
                if not sink.flush():
                    success = False
            except Exception as e:
                self.logger.error(f"{type(sink).__name__} 投递告警时发生错误: {str(e)}")
                success = False
        return success
