"""
配置加载与验证服务
"""
import os
import re
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, Mapping, Optional, Tuple
import logging

from .error_handler import ConfigurationError


TRUE_VALUES = {'1', 'true', 'yes', 'on'}
FALSE_VALUES = {'0', 'false', 'no', 'off', ''}

SNS_ARN_PATTERN = r'^arn:aws:sns:[a-z0-9-]+:\d{12}:[a-zA-Z0-9_-]+$'


@dataclass(frozen=True)
class AppConfig:
    """运行配置，加载后在整个运行期间不可变"""
    notification_days: int = 30
    domains: Optional[str] = None
    domains_file: Optional[str] = None
    connect_timeout: int = 30
    verify_certificates: bool = True
    max_workers: int = 1
    run_timeout: Optional[float] = None
    log_level: str = 'INFO'
    log_file: Optional[str] = None
    notification_send: bool = False
    smtp_host: str = 'localhost'
    smtp_port: int = 25
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_starttls: bool = False
    notification_from: Optional[str] = None
    notification_emails: Tuple[str, ...] = ()
    sns_topic_arn: Optional[str] = None

    def with_overrides(self, **changes) -> "AppConfig":
        """返回覆盖部分字段后的新配置，非None的值才会生效"""
        config = replace(self, **{key: value for key, value in changes.items() if value is not None})
        _check_ranges(config)
        return config

    def sanitized(self) -> Dict[str, Any]:
        """
        清理配置信息中的敏感数据

        Returns:
            Dict[str, Any]: 可以写入日志的配置
        """
        safe_config = asdict(self)
        if self.smtp_password:
            safe_config['smtp_password'] = '***'
        if self.sns_topic_arn:
            parts = self.sns_topic_arn.split(':')
            if len(parts) >= 6:
                safe_config['sns_topic_arn'] = f"{':'.join(parts[:3])}:***:{parts[-2]}:{parts[-1]}"
            else:
                safe_config['sns_topic_arn'] = '***'
        return safe_config


def _get(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _get_int(environ: Mapping[str, str], name: str, default: int) -> int:
    value = _get(environ, name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"环境变量 {name} 不是有效的整数: {value}")


def _get_float(environ: Mapping[str, str], name: str) -> Optional[float]:
    value = _get(environ, name)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"环境变量 {name} 不是有效的数字: {value}")


def _get_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    value = environ.get(name)
    if value is None:
        return default
    value = value.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigurationError(f"环境变量 {name} 不是有效的布尔值: {value}")


def _check_ranges(config: AppConfig):
    if config.notification_days < 0:
        raise ConfigurationError(f"提醒天数不能为负数: {config.notification_days}")
    if config.connect_timeout <= 0:
        raise ConfigurationError(f"连接超时时间必须大于0: {config.connect_timeout}")
    if config.max_workers < 1:
        raise ConfigurationError(f"工作线程数必须至少为1: {config.max_workers}")
    if config.run_timeout is not None and config.run_timeout <= 0:
        raise ConfigurationError(f"运行超时时间必须大于0: {config.run_timeout}")


def load_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    从环境变量加载配置

    Args:
        environ: 环境变量映射，默认为 os.environ

    Returns:
        AppConfig: 配置

    Raises:
        ConfigurationError: 配置值格式错误或超出范围
    """
    environ = os.environ if environ is None else environ

    emails = _get(environ, 'NOTIFICATION_EMAILS') or ''

    config = AppConfig(
        notification_days=_get_int(environ, 'NOTIFICATION_DAYS', 30),
        domains=_get(environ, 'DOMAINS'),
        domains_file=_get(environ, 'DOMAINS_FILE'),
        connect_timeout=_get_int(environ, 'CONNECT_TIMEOUT', 30),
        verify_certificates=_get_bool(environ, 'VERIFY_CERTIFICATES', True),
        max_workers=_get_int(environ, 'MAX_WORKERS', 1),
        run_timeout=_get_float(environ, 'RUN_TIMEOUT'),
        log_level=(_get(environ, 'LOG_LEVEL') or 'INFO').upper(),
        log_file=_get(environ, 'LOG_FILE'),
        notification_send=_get_bool(environ, 'NOTIFICATION_SEND', False),
        smtp_host=_get(environ, 'SMTP_HOST') or 'localhost',
        smtp_port=_get_int(environ, 'SMTP_PORT', 25),
        smtp_user=_get(environ, 'SMTP_USER'),
        smtp_password=_get(environ, 'SMTP_PASSWORD'),
        smtp_starttls=_get_bool(environ, 'SMTP_STARTTLS', False),
        notification_from=_get(environ, 'NOTIFICATION_FROM'),
        notification_emails=tuple(email.strip() for email in emails.split(',') if email.strip()),
        sns_topic_arn=_get(environ, 'SNS_TOPIC_ARN'),
    )

    _check_ranges(config)
    return config


class ConfigValidator:
    """配置验证器"""

    def __init__(self, config: AppConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def validate(self) -> Dict[str, Any]:
        """
        验证配置是否足以完成一次运行

        Returns:
            Dict[str, Any]: 验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': []
        }

        if not self.config.domains and not self.config.domains_file:
            result['is_valid'] = False
            result['errors'].append("未配置域名列表，请设置 DOMAINS 或 DOMAINS_FILE")

        if self.config.domains_file and not os.path.isfile(self.config.domains_file):
            result['is_valid'] = False
            result['errors'].append(f"域名列表文件不存在: {self.config.domains_file}")

        if self.config.log_file:
            log_dir = os.path.dirname(os.path.abspath(self.config.log_file))
            if not os.path.isdir(log_dir):
                result['is_valid'] = False
                result['errors'].append(f"日志文件目录不存在: {log_dir}")

        if self.config.notification_send:
            if not self.config.notification_from:
                result['is_valid'] = False
                result['errors'].append("已开启邮件通知但未设置 NOTIFICATION_FROM")
            if not self.config.notification_emails:
                result['is_valid'] = False
                result['errors'].append("已开启邮件通知但未设置 NOTIFICATION_EMAILS")
            if bool(self.config.smtp_user) != bool(self.config.smtp_password):
                result['warnings'].append("SMTP_USER 与 SMTP_PASSWORD 需同时设置，否则不进行登录")

        if self.config.sns_topic_arn and not re.match(SNS_ARN_PATTERN, self.config.sns_topic_arn):
            result['is_valid'] = False
            result['errors'].append(f"SNS主题ARN格式无效: {self.config.sns_topic_arn}")

        if not self.config.notification_send and not self.config.sns_topic_arn:
            result['warnings'].append("未配置邮件或SNS通知，告警只会写入日志")

        return result

    def get_configuration_summary(self) -> str:
        """
        获取配置摘要

        Returns:
            str: 配置摘要文本
        """
        validation_result = self.validate()

        lines = [
            "配置验证摘要",
            "=" * 30
        ]

        if validation_result['is_valid']:
            lines.append("✅ 配置验证通过")
        else:
            lines.append("❌ 配置验证失败")

        if validation_result['errors']:
            lines.append("\n错误:")
            for error in validation_result['errors']:
                lines.append(f"  • {error}")

        if validation_result['warnings']:
            lines.append("\n警告:")
            for warning in validation_result['warnings']:
                lines.append(f"  • {warning}")

        return "\n".join(lines)
