"""
SNS通知服务测试
"""
import pytest
import os
from unittest.mock import patch, MagicMock
from datetime import datetime, timezone
from botocore.exceptions import ClientError

from cert_expiry_checker.services.sns_notification import SNSAlertSink
from cert_expiry_checker.models import ExpiryWarning, FetchFailure


TOPIC_ARN = "arn:aws:sns:us-east-1:123456789012:ssl-alerts"


def make_warning(domain="expiring.com"):
    return ExpiryWarning(
        domain=domain,
        window_days=30,
        expiry_date=datetime(2024, 3, 20, 12, 0, 0, tzinfo=timezone.utc),
        days_until_expiry=15
    )


def make_failure(domain="bad.example.com"):
    return FetchFailure(domain=domain, reason="handshake failure")


class TestSNSAlertSink:
    """SNS接收端测试类"""

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    def test_init_with_topic_arn(self, mock_boto3):
        """测试使用指定topic_arn初始化"""
        mock_client = MagicMock()
        mock_boto3.client.return_value = mock_client

        sink = SNSAlertSink(topic_arn=TOPIC_ARN)

        assert sink.topic_arn == TOPIC_ARN
        assert sink.sns_client == mock_client
        mock_boto3.client.assert_called_once_with('sns', region_name='us-east-1')

    @patch.dict(os.environ, {'SNS_TOPIC_ARN': 'arn:aws:sns:eu-west-1:123456789012:env-topic'})
    @patch('cert_expiry_checker.services.sns_notification.boto3')
    def test_init_from_env(self, mock_boto3):
        """测试从环境变量初始化"""
        sink = SNSAlertSink()

        assert sink.topic_arn == 'arn:aws:sns:eu-west-1:123456789012:env-topic'
        assert sink.region_name == 'eu-west-1'

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    def test_flush_without_events(self, mock_boto3):
        """测试没有事件时不发送"""
        mock_client = MagicMock()
        mock_boto3.client.return_value = mock_client

        sink = SNSAlertSink(topic_arn=TOPIC_ARN)

        assert sink.flush() is True
        mock_client.publish.assert_not_called()

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    def test_flush_publishes_single_message(self, mock_boto3):
        """测试合并为一条消息发送"""
        mock_client = MagicMock()
        mock_client.publish.return_value = {'MessageId': 'test-message-id'}
        mock_boto3.client.return_value = mock_client

        sink = SNSAlertSink(topic_arn=TOPIC_ARN)
        sink.emit_expiry_warning(make_warning())
        sink.emit_fetch_failure(make_failure())

        assert sink.flush() is True
        mock_client.publish.assert_called_once()

        call_args = mock_client.publish.call_args
        assert call_args[1]['TopicArn'] == TOPIC_ARN
        assert call_args[1]['Subject'] == "🚨 SSL证书警报: 1个即将过期, 1个检查失败"
        assert "expiring.com" in call_args[1]['Message']
        assert "bad.example.com" in call_args[1]['Message']

        # 事件已经投递，缓存被清空
        assert sink.events == []

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    def test_flush_in_batches(self, mock_boto3):
        """测试事件过多时分批发送"""
        mock_client = MagicMock()
        mock_client.publish.return_value = {'MessageId': 'test-message-id'}
        mock_boto3.client.return_value = mock_client

        sink = SNSAlertSink(topic_arn=TOPIC_ARN, batch_size=10)
        for i in range(25):
            sink.emit_expiry_warning(make_warning(f"test{i}.com"))

        assert sink.flush() is True
        assert mock_client.publish.call_count == 3

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    def test_flush_partial_failure(self, mock_boto3):
        """测试分批发送部分失败"""
        mock_client = MagicMock()
        mock_client.publish.side_effect = [
            {'MessageId': 'test-message-id-1'},
            ClientError({'Error': {'Code': 'NotFound', 'Message': 'Topic not found'}}, 'Publish'),
        ]
        mock_boto3.client.return_value = mock_client

        sink = SNSAlertSink(topic_arn=TOPIC_ARN, batch_size=1)
        sink.emit_expiry_warning(make_warning())
        sink.emit_fetch_failure(make_failure())

        assert sink.flush() is False

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    def test_flush_without_client(self, mock_boto3):
        """测试缺少SNS客户端"""
        sink = SNSAlertSink(topic_arn=TOPIC_ARN)
        sink.sns_client = None
        sink.emit_expiry_warning(make_warning())

        assert sink.flush() is False

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    @patch('cert_expiry_checker.services.sns_notification.time.sleep')
    def test_publish_with_retry_success_after_retry(self, mock_sleep, mock_boto3):
        """测试重试后成功发送"""
        mock_client = MagicMock()
        mock_client.publish.side_effect = [
            ClientError({'Error': {'Code': 'Throttling', 'Message': 'Rate exceeded'}}, 'Publish'),
            {'MessageId': 'test-message-id'}
        ]
        mock_boto3.client.return_value = mock_client

        sink = SNSAlertSink(topic_arn=TOPIC_ARN)

        assert sink._publish_with_retry("Test Subject", "Test Message") is True
        assert mock_client.publish.call_count == 2
        mock_sleep.assert_called_once_with(1)

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    @patch('cert_expiry_checker.services.sns_notification.time.sleep')
    def test_publish_with_retry_max_retries_exceeded(self, mock_sleep, mock_boto3):
        """测试超过最大重试次数"""
        mock_client = MagicMock()
        mock_client.publish.side_effect = ClientError(
            {'Error': {'Code': 'Throttling', 'Message': 'Rate exceeded'}}, 'Publish'
        )
        mock_boto3.client.return_value = mock_client

        sink = SNSAlertSink(topic_arn=TOPIC_ARN, max_retries=2)

        assert sink._publish_with_retry("Test Subject", "Test Message") is False
        assert mock_client.publish.call_count == 3  # 初始尝试 + 2次重试
        assert mock_sleep.call_count == 2

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    def test_non_retryable_error(self, mock_boto3):
        """测试不可重试的错误直接失败"""
        mock_client = MagicMock()
        mock_client.publish.side_effect = ClientError(
            {'Error': {'Code': 'AuthorizationError', 'Message': 'denied'}}, 'Publish'
        )
        mock_boto3.client.return_value = mock_client

        sink = SNSAlertSink(topic_arn=TOPIC_ARN)

        assert sink._publish_with_retry("Test Subject", "Test Message") is False
        assert mock_client.publish.call_count == 1

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    def test_is_retryable_error(self, mock_boto3):
        """测试可重试错误判断"""
        sink = SNSAlertSink(topic_arn=TOPIC_ARN)

        assert sink._is_retryable_error('Throttling') is True
        assert sink._is_retryable_error('ServiceUnavailable') is True
        assert sink._is_retryable_error('InternalError') is True
        assert sink._is_retryable_error('RequestTimeout') is True

        assert sink._is_retryable_error('NotFound') is False
        assert sink._is_retryable_error('AccessDenied') is False

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    def test_format_subject(self, mock_boto3):
        """测试消息主题格式化"""
        sink = SNSAlertSink(topic_arn=TOPIC_ARN)

        assert sink.format_subject([make_warning()]) == "⚠️ SSL证书提醒: 1个证书即将过期"
        assert sink.format_subject([make_failure(), make_failure("other.com")]) == "❌ SSL证书警报: 2个证书检查失败"
        assert sink.format_subject([]) == "SSL证书状态报告"

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    def test_format_message(self, mock_boto3):
        """测试消息内容格式化"""
        sink = SNSAlertSink(topic_arn=TOPIC_ARN)

        message = sink.format_message([make_warning(), make_failure()])

        assert "SSL证书过期监控报告" in message
        assert "The SSL certification of expiring.com will be expired within 30 days" in message
        assert "过期时间: 2024-03-20 12:00:00" in message
        assert "剩余天数: 15 天" in message
        assert "The SSL certification of bad.example.com can not be checked! handshake failure" in message
        assert "错误类型: ConnectionError" in message

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    def test_test_connection(self, mock_boto3):
        """测试连接测试"""
        mock_client = MagicMock()
        mock_boto3.client.return_value = mock_client
        sink = SNSAlertSink(topic_arn=TOPIC_ARN)

        assert sink.test_connection() is True
        mock_client.get_topic_attributes.assert_called_once_with(TopicArn=TOPIC_ARN)

        mock_client.get_topic_attributes.side_effect = ClientError(
            {'Error': {'Code': 'NotFound', 'Message': 'Topic not found'}},
            'GetTopicAttributes'
        )
        assert sink.test_connection() is False

    @patch('cert_expiry_checker.services.sns_notification.boto3')
    def test_get_configuration_status(self, mock_boto3):
        """测试获取配置状态"""
        sink = SNSAlertSink(topic_arn=TOPIC_ARN, region_name='us-west-2')

        status = sink.get_configuration_status()

        assert status['sns_client_initialized'] is True
        assert status['topic_arn_configured'] is True
        assert status['region_name'] == 'us-west-2'
        assert status['configuration_valid'] is True
