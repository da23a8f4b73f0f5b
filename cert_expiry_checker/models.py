"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Union


CONNECTION_ERROR = "ConnectionError"
CERTIFICATE_PARSE_ERROR = "CertificateParseError"
INVALID_DOMAIN = "InvalidDomain"


@dataclass(frozen=True)
class FetchError:
    """证书获取失败信息"""
    domain: str
    reason: str
    error_type: str = CONNECTION_ERROR


@dataclass(frozen=True)
class FetchResult:
    """
    单个域名的证书获取结果

    expiry_date 为 None 表示过期时间未知（连接失败或证书无法解析），
    此时 error 必须给出原因。
    """
    domain: str
    expiry_date: Optional[datetime] = None
    issuer: Optional[str] = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        """是否成功获取到过期时间"""
        return self.error is None and self.expiry_date is not None

    @classmethod
    def known(cls, domain: str, expiry_date: datetime, issuer: Optional[str] = None) -> "FetchResult":
        return cls(domain=domain, expiry_date=expiry_date, issuer=issuer)

    @classmethod
    def failed(cls, error: FetchError) -> "FetchResult":
        return cls(domain=error.domain, error=error)


@dataclass(frozen=True)
class ExpiryWarning:
    """证书即将过期事件"""
    domain: str
    window_days: int
    expiry_date: Optional[datetime] = None
    days_until_expiry: Optional[int] = None


@dataclass(frozen=True)
class FetchFailure:
    """证书检查失败事件"""
    domain: str
    reason: str
    error_type: str = CONNECTION_ERROR

    @classmethod
    def from_error(cls, error: FetchError) -> "FetchFailure":
        return cls(domain=error.domain, reason=error.reason, error_type=error.error_type)


AlertEvent = Union[ExpiryWarning, FetchFailure]


@dataclass
class RunSummary:
    """检查结果统计"""
    total_domains: int = 0
    checked_domains: int = 0
    skipped_domains: int = 0
    warnings: List[ExpiryWarning] = field(default_factory=list)
    failures: List[FetchFailure] = field(default_factory=list)
    events: List[AlertEvent] = field(default_factory=list)
    cancelled: bool = False
    execution_time: float = 0.0

    def record(self, event: AlertEvent):
        """按发出顺序记录事件"""
        self.events.append(event)
        if isinstance(event, ExpiryWarning):
            self.warnings.append(event)
        else:
            self.failures.append(event)

    @property
    def successful_checks(self) -> int:
        return self.checked_domains - len(self.failures)

    @property
    def has_alerts(self) -> bool:
        return bool(self.warnings or self.failures)
