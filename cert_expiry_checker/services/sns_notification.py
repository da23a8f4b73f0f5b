"""
SNS通知服务
"""
import os
import time
from typing import List, Optional
import logging
from datetime import datetime, timezone

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..models import AlertEvent, ExpiryWarning, FetchFailure
from .alert_sinks import BufferedAlertSink, format_event


class SNSAlertSink(BufferedAlertSink):
    """通过AWS SNS投递告警的接收端，每次运行合并为一条消息"""

    def __init__(self, topic_arn: Optional[str] = None, region_name: Optional[str] = None,
                 batch_size: int = 50, max_retries: int = 3):
        """
        初始化SNS接收端

        Args:
            topic_arn: SNS主题ARN，如果为None则从环境变量读取
            region_name: AWS区域名称，如果为None则自动检测
            batch_size: 单条消息最多包含的事件数
            max_retries: 发送失败时的最大重试次数
        """
        super().__init__()
        self.topic_arn = topic_arn or os.getenv('SNS_TOPIC_ARN')
        self.batch_size = batch_size
        self.max_retries = max_retries

        # 自动检测区域
        if region_name:
            self.region_name = region_name
        elif self.topic_arn and self.topic_arn.startswith('arn:aws:sns:'):
            # 从SNS ARN中提取区域
            self.region_name = self.topic_arn.split(':')[3]
        else:
            self.region_name = os.getenv('AWS_REGION', 'us-east-1')

        self.logger = logging.getLogger(__name__)

        self.sns_client = None
        try:
            self.sns_client = boto3.client('sns', region_name=self.region_name)
            self.logger.debug(f"SNS客户端初始化成功，区域: {self.region_name}")
        except BotoCoreError as e:
            self.logger.error(f"初始化SNS客户端失败: {str(e)}")

    def flush(self) -> bool:
        """
        发送缓存的全部告警

        Returns:
            bool: 所有消息是否都发送成功
        """
        events = self.drain()
        if not events:
            self.logger.info("没有需要发送的告警，跳过SNS通知")
            return True

        if not self._validate_configuration():
            return False

        total_batches = (len(events) + self.batch_size - 1) // self.batch_size
        success_count = 0

        for i in range(0, len(events), self.batch_size):
            batch = events[i:i + self.batch_size]
            batch_num = i // self.batch_size + 1

            if total_batches > 1:
                self.logger.info(f"发送第 {batch_num}/{total_batches} 批告警，包含 {len(batch)} 条事件")

            if self._publish_with_retry(self.format_subject(batch), self.format_message(batch)):
                success_count += 1
            else:
                self.logger.error(f"第 {batch_num} 批告警发送失败")

        return success_count == total_batches

    def _publish_with_retry(self, subject: str, message: str) -> bool:
        """
        带重试机制的SNS消息发布

        Args:
            subject: 消息主题
            message: 消息内容

        Returns:
            bool: 发送是否成功
        """
        for attempt in range(self.max_retries + 1):
            try:
                response = self.sns_client.publish(
                    TopicArn=self.topic_arn,
                    Subject=subject,
                    Message=message
                )
                self.logger.info(f"SNS通知发送成功，MessageId: {response.get('MessageId')}")
                return True

            except ClientError as e:
                error_code = e.response['Error']['Code']
                error_message = e.response['Error']['Message']

                if self._is_retryable_error(error_code) and attempt < self.max_retries:
                    wait_time = 2 ** attempt  # 指数退避
                    self.logger.warning(
                        f"SNS发送失败 (尝试 {attempt + 1}/{self.max_retries + 1}) - {error_code}: {error_message}，"
                        f"{wait_time}秒后重试"
                    )
                    time.sleep(wait_time)
                    continue

                self.logger.error(f"SNS发送失败 - {error_code}: {error_message}")
                return False

            except BotoCoreError as e:
                if attempt < self.max_retries:
                    wait_time = 2 ** attempt
                    self.logger.warning(
                        f"发送SNS通知时发生错误 (尝试 {attempt + 1}/{self.max_retries + 1}): {str(e)}，"
                        f"{wait_time}秒后重试"
                    )
                    time.sleep(wait_time)
                    continue

                self.logger.error(f"发送SNS通知时发生错误: {str(e)}")
                return False

        return False

    def _is_retryable_error(self, error_code: str) -> bool:
        retryable_errors = {
            'Throttling',
            'ServiceUnavailable',
            'InternalError',
            'RequestTimeout'
        }
        return error_code in retryable_errors

    def format_subject(self, events: List[AlertEvent]) -> str:
        """
        格式化消息主题

        Args:
            events: 告警事件列表

        Returns:
            str: 消息主题
        """
        warning_count = len([event for event in events if isinstance(event, ExpiryWarning)])
        failure_count = len([event for event in events if isinstance(event, FetchFailure)])

        if warning_count > 0 and failure_count > 0:
            return f"🚨 SSL证书警报: {warning_count}个即将过期, {failure_count}个检查失败"
        elif warning_count > 0:
            return f"⚠️ SSL证书提醒: {warning_count}个证书即将过期"
        elif failure_count > 0:
            return f"❌ SSL证书警报: {failure_count}个证书检查失败"
        else:
            return "SSL证书状态报告"

    def format_message(self, events: List[AlertEvent]) -> str:
        """
        格式化消息内容

        Args:
            events: 告警事件列表

        Returns:
            str: 消息内容
        """
        warnings = [event for event in events if isinstance(event, ExpiryWarning)]
        failures = [event for event in events if isinstance(event, FetchFailure)]

        lines = [
            "SSL证书过期监控报告",
            "=" * 30,
            f"检查时间: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')} UTC",
            ""
        ]

        if warnings:
            lines.extend([
                "⚠️  即将过期证书:",
                ""
            ])
            for event in warnings:
                lines.append(f"• {format_event(event)}")
                if event.expiry_date is not None:
                    lines.append(f"  过期时间: {event.expiry_date.strftime('%Y-%m-%d %H:%M:%S')}")
                if event.days_until_expiry is not None:
                    lines.append(f"  剩余天数: {event.days_until_expiry} 天")
                lines.append("")

        if failures:
            lines.extend([
                "❌ 检查失败的证书:",
                ""
            ])
            for event in failures:
                lines.append(f"• {format_event(event)}")
                lines.append(f"  错误类型: {event.error_type}")
                lines.append("")

        lines.append("此消息由SSL证书监控系统自动发送。")

        return "\n".join(lines)

    def _validate_configuration(self) -> bool:
        if not self.sns_client:
            self.logger.error("SNS客户端未初始化")
            return False

        if not self.topic_arn:
            self.logger.error("SNS主题ARN未配置")
            return False

        return True

    def test_connection(self) -> bool:
        """
        测试SNS连接

        Returns:
            bool: 连接是否成功
        """
        if not self._validate_configuration():
            return False

        try:
            self.sns_client.get_topic_attributes(TopicArn=self.topic_arn)
            self.logger.info("SNS连接测试成功")
            return True

        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            self.logger.error(f"SNS连接测试失败 - {error_code}: {error_message}")
            return False

        except BotoCoreError as e:
            self.logger.error(f"SNS连接测试时发生错误: {str(e)}")
            return False

    def get_configuration_status(self) -> dict:
        """
        获取配置状态

        Returns:
            dict: 配置状态信息
        """
        return {
            'sns_client_initialized': self.sns_client is not None,
            'topic_arn_configured': bool(self.topic_arn),
            'topic_arn': self.topic_arn,
            'region_name': self.region_name,
            'configuration_valid': self._validate_configuration()
        }
