"""
AWS Lambda函数入口点
"""
import threading
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone

from .interfaces import AlertSinkInterface, CertificateFetcherInterface
from .models import RunSummary
from .runner import CertificateExpiryRunner
from .services.alert_sinks import CompositeAlertSink, LoggingAlertSink
from .services.certificate_fetcher import CertificateFetcher
from .services.config import AppConfig, ConfigValidator, load_config
from .services.domain_config import DomainConfigManager
from .services.email_notification import SMTPAlertSink
from .services.error_handler import ConfigurationError
from .services.expiry_evaluator import Clock, ExpiryEvaluator
from .services.logger import LoggerService
from .services.sns_notification import SNSAlertSink


def build_sink(config: AppConfig, logger_service: LoggerService) -> CompositeAlertSink:
    """
    根据配置组装告警接收端，日志接收端总是启用

    Args:
        config: 运行配置
        logger_service: 日志服务

    Returns:
        CompositeAlertSink: 组合后的接收端
    """
    sinks: List[AlertSinkInterface] = [LoggingAlertSink(logger_service.get_logger('alerts'))]

    if config.notification_send:
        sinks.append(SMTPAlertSink(
            host=config.smtp_host,
            port=config.smtp_port,
            sender=config.notification_from,
            recipients=config.notification_emails,
            user=config.smtp_user,
            password=config.smtp_password,
            starttls=config.smtp_starttls
        ))

    if config.sns_topic_arn:
        sinks.append(SNSAlertSink(topic_arn=config.sns_topic_arn))

    return CompositeAlertSink(*sinks)


class CertExpiryMonitor:
    """SSL证书过期监控器主类"""

    def __init__(self, config: AppConfig, fetcher: Optional[CertificateFetcherInterface] = None,
                 sink: Optional[AlertSinkInterface] = None, clock: Optional[Clock] = None,
                 logger_service: Optional[LoggerService] = None):
        """
        初始化监控器，不进行任何网络操作

        Args:
            config: 运行配置
            fetcher: 证书获取器，默认按配置创建
            sink: 告警接收端，默认按配置创建
            clock: 当前时间来源
            logger_service: 日志服务
        """
        self.config = config
        self.logger_service = logger_service or LoggerService(log_level=config.log_level, log_file=config.log_file)
        self.domain_manager = DomainConfigManager(domains_file=config.domains_file, domains=config.domains or "")
        self.fetcher = fetcher or CertificateFetcher(
            timeout=config.connect_timeout,
            verify=config.verify_certificates
        )
        self.evaluator = ExpiryEvaluator(window_days=config.notification_days, clock=clock)
        self.sink = sink or build_sink(config, self.logger_service)
        self.runner = CertificateExpiryRunner(self.fetcher, self.evaluator, self.sink)

    def execute(self, domains: Optional[List[str]] = None,
                cancel_event: Optional[threading.Event] = None) -> RunSummary:
        """
        执行SSL证书检查并投递告警

        Args:
            domains: 要检查的域名，默认从配置读取
            cancel_event: 中止信号

        Returns:
            RunSummary: 检查结果
        """
        self.logger_service.log_configuration_info(self.config.sanitized())

        if domains is None:
            domains = self.domain_manager.get_domains()

        if not domains:
            self.logger_service.logger.warning("没有找到要检查的域名")
            return RunSummary()

        self.logger_service.log_check_start(len(domains), self.evaluator.window_days)

        if self.config.max_workers > 1:
            summary = self.runner.run_concurrent(
                domains,
                max_workers=self.config.max_workers,
                cancel_event=cancel_event,
                deadline=self.config.run_timeout
            )
        else:
            summary = self.runner.run(domains, cancel_event=cancel_event, deadline=self.config.run_timeout)

        self.logger_service.log_check_end(summary)

        event_count = len(summary.events)
        delivered = self.sink.flush()
        if event_count:
            self.logger_service.log_notification_sent("告警", event_count, delivered)

        return summary

    def validate_system_health(self) -> Dict[str, Any]:
        """
        验证系统健康状态：配置、域名列表和SNS连接

        Returns:
            dict: 系统健康状态信息
        """
        health_status = {
            'overall_healthy': True,
            'components': {},
            'issues': []
        }

        validation = ConfigValidator(self.config).validate()
        health_status['components']['configuration'] = {
            'healthy': validation['is_valid'],
            'details': validation
        }
        if not validation['is_valid']:
            health_status['issues'].extend(validation['errors'])
            health_status['overall_healthy'] = False

        try:
            domain_count = len(self.domain_manager.get_domains())
        except ConfigurationError as e:
            domain_count = 0
            health_status['issues'].append(str(e))
        health_status['components']['domain_config'] = {
            'healthy': domain_count > 0,
            'details': {'total_domains': domain_count}
        }
        if domain_count == 0:
            health_status['issues'].append("没有配置要监控的域名")
            health_status['overall_healthy'] = False

        for sink in getattr(self.sink, 'sinks', [self.sink]):
            if not isinstance(sink, SNSAlertSink):
                continue

            sns_config = sink.get_configuration_status()
            health_status['components']['sns_notification'] = {
                'healthy': sns_config['configuration_valid'],
                'details': sns_config
            }
            if not sns_config['configuration_valid']:
                health_status['issues'].append("SNS通知配置无效")
                health_status['overall_healthy'] = False
                continue

            sns_connection = sink.test_connection()
            health_status['components']['sns_connection'] = {
                'healthy': sns_connection,
                'details': {'connection_test': sns_connection}
            }
            if not sns_connection:
                health_status['issues'].append("SNS连接测试失败")
                health_status['overall_healthy'] = False

        return health_status


def _error_response(message: str, error: Exception) -> Dict[str, Any]:
    return {
        'statusCode': 500,
        'body': {
            'message': message,
            'error': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda函数入口点

    Args:
        event: EventBridge触发事件，可包含 days_to_warn 覆盖提醒天数，
            health_check 为真时只做健康检查
        context: Lambda运行时上下文

    Returns:
        dict: 执行结果和统计信息
    """
    event = event or {}

    try:
        days_to_warn = event.get('days_to_warn')
        config = load_config().with_overrides(
            notification_days=int(days_to_warn) if days_to_warn is not None else None
        )
        validation = ConfigValidator(config).validate()
        if not validation['is_valid'] and not event.get('health_check'):
            raise ConfigurationError("; ".join(validation['errors']))
    except (ConfigurationError, ValueError, TypeError) as e:
        return _error_response('Certificate expiry check is misconfigured', e)

    try:
        monitor = CertExpiryMonitor(config)
        if event.get('health_check'):
            health_status = monitor.validate_system_health()
            return {
                'statusCode': 200 if health_status['overall_healthy'] else 500,
                'body': {
                    'message': 'Certificate expiry check health status',
                    'health': health_status,
                    'timestamp': datetime.now(timezone.utc).isoformat()
                }
            }
        summary = monitor.execute()
    except (ConfigurationError, OSError) as e:
        return _error_response('Certificate expiry check failed to start', e)

    return {
        'statusCode': 200,
        'body': {
            'message': 'Certificate expiry check executed successfully',
            'summary': {
                'total_domains': summary.total_domains,
                'checked_domains': summary.checked_domains,
                'skipped_domains': summary.skipped_domains,
                'expiring_certificates': len(summary.warnings),
                'failed_checks': len(summary.failures),
                'cancelled': summary.cancelled,
                'execution_time_seconds': summary.execution_time
            },
            'expiring_domains': [warning.domain for warning in summary.warnings],
            'failed_domains': [failure.domain for failure in summary.failures],
            'errors': [f"{failure.domain}: {failure.reason}" for failure in summary.failures[:5]],
            'timestamp': datetime.now(timezone.utc).isoformat()
        }
    }
