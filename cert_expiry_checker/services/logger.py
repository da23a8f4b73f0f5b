"""
日志服务
"""
import os
import logging
from typing import Dict, Any, Optional

from ..models import RunSummary


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class LoggerService:
    """日志服务实现"""

    def __init__(self, logger_name: str = "cert_expiry_checker", log_level: Optional[str] = None,
                 log_file: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
            log_file: 错误日志文件，只记录ERROR及以上级别
        """
        self.logger_name = logger_name
        self.log_level = (log_level or os.getenv('LOG_LEVEL', 'INFO')).upper()
        self.log_file = log_file

        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level, logging.INFO)
        self.logger.setLevel(min(level, logging.ERROR))

        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

        # 避免重复添加处理器
        if not any(type(handler) is logging.StreamHandler for handler in self.logger.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

        for handler in self.logger.handlers:
            if type(handler) is logging.StreamHandler:
                handler.setLevel(level)

        if self.log_file and not self._has_file_handler(self.log_file):
            file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
            file_handler.setLevel(logging.ERROR)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

        # 防止日志传播到根日志器
        self.logger.propagate = False

    def _has_file_handler(self, path: str) -> bool:
        target = os.path.abspath(path)
        return any(
            isinstance(handler, logging.FileHandler) and handler.baseFilename == target
            for handler in self.logger.handlers
        )

    def get_logger(self, name: str) -> logging.Logger:
        """获取挂在本日志器下的子日志器"""
        return self.logger.getChild(name)

    def log_check_start(self, domain_count: int, window_days: int):
        """
        记录检查开始

        Args:
            domain_count: 要检查的域名数量
            window_days: 提前提醒天数
        """
        self.logger.info(f"开始SSL证书检查，共 {domain_count} 个域名，提前 {window_days} 天提醒")

    def log_check_end(self, summary: RunSummary):
        """
        记录检查结束

        Args:
            summary: 运行结果
        """
        if summary.cancelled:
            self.logger.warning("SSL证书检查被中止，剩余域名未检查")
        else:
            self.logger.info("SSL证书检查完成")

        self.logger.info(f"总执行时间: {summary.execution_time:.2f} 秒")
        self.logger.info(
            f"检查统计: 总计 {summary.total_domains} 个域名, "
            f"已检查 {summary.checked_domains} 个, "
            f"跳过 {summary.skipped_domains} 个, "
            f"即将过期 {len(summary.warnings)} 个, "
            f"失败 {len(summary.failures)} 个"
        )

    def log_notification_sent(self, notification_type: str, event_count: int, success: bool):
        """
        记录通知发送状态

        Args:
            notification_type: 通知类型
            event_count: 事件数量
            success: 是否发送成功
        """
        if success:
            self.logger.info(f"{notification_type} 通知投递完成，事件数量: {event_count}")
        else:
            self.logger.error(f"{notification_type} 通知投递失败，事件数量: {event_count}")

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 已清理敏感信息的配置字典
        """
        self.logger.info("系统配置信息:")
        for key, value in config.items():
            self.logger.info(f"  {key}: {value}")
