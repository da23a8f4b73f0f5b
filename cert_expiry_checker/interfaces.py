"""
服务接口定义
"""
from abc import ABC, abstractmethod
from typing import List
from .models import FetchResult, ExpiryWarning, FetchFailure


class DomainConfigManagerInterface(ABC):
    """域名配置管理器接口"""

    @abstractmethod
    def get_domains(self) -> List[str]:
        """获取域名列表"""
        pass

    @abstractmethod
    def validate_domain(self, domain: str) -> bool:
        """验证域名格式"""
        pass


class CertificateFetcherInterface(ABC):
    """证书获取器接口"""

    @abstractmethod
    def fetch(self, domain: str) -> FetchResult:
        """获取单个域名证书的过期时间，失败时返回带错误信息的结果而不抛出异常"""
        pass


class AlertSinkInterface(ABC):
    """告警接收端接口，实现必须允许多线程并发调用"""

    @abstractmethod
    def emit_expiry_warning(self, event: ExpiryWarning):
        """接收证书即将过期事件"""
        pass

    @abstractmethod
    def emit_fetch_failure(self, event: FetchFailure):
        """接收证书检查失败事件"""
        pass

    def flush(self) -> bool:
        """投递缓冲的事件，返回是否成功"""
        return True
