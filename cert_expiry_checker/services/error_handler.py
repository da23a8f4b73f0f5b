"""
错误处理服务
"""
import socket
import ssl
from typing import Any, Dict
import logging

from ..models import FetchError, CONNECTION_ERROR, CERTIFICATE_PARSE_ERROR


class CertCheckError(Exception):
    """证书检查相关错误的基类"""


class CertificateParseError(CertCheckError):
    """连接成功但证书缺失或无法解析"""


class ConfigurationError(CertCheckError):
    """配置错误，启动时即为致命错误"""


class FetchErrorHandler:
    """证书获取错误处理器"""

    def __init__(self):
        """初始化错误处理器"""
        self.logger = logging.getLogger(__name__)

        # 归类为连接错误的异常类型
        self.connection_errors = (
            socket.timeout,
            socket.gaierror,
            ConnectionError,
            ssl.SSLError,
            OSError,
        )

        # 归类为证书解析错误的异常类型
        self.parse_errors = (
            CertificateParseError,
            ValueError,
            KeyError,
            TypeError,
        )

    def classify(self, domain: str, error: Exception) -> FetchError:
        """
        将异常转换为可上报的错误值

        Args:
            domain: 域名
            error: 异常对象

        Returns:
            FetchError: 错误信息
        """
        error_info = self.handle_fetch_error(domain, error)
        return FetchError(
            domain=domain,
            reason=error_info['error_message'],
            error_type=error_info['error_type']
        )

    def get_error_type(self, error: Exception) -> str:
        """
        判断错误所属类别

        Args:
            error: 异常对象

        Returns:
            str: ConnectionError 或 CertificateParseError
        """
        # ssl.CertificateError 同时是 ValueError 的子类，按连接错误处理
        if isinstance(error, self.connection_errors):
            return CONNECTION_ERROR
        if isinstance(error, self.parse_errors):
            return CERTIFICATE_PARSE_ERROR
        return CONNECTION_ERROR

    def handle_fetch_error(self, domain: str, error: Exception) -> Dict[str, Any]:
        """
        处理证书获取错误

        Args:
            domain: 域名
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误处理结果
        """
        error_message = str(error) or type(error).__name__
        error_info = {
            'domain': domain,
            'error_type': self.get_error_type(error),
            'exception_type': type(error).__name__,
            'error_message': error_message,
            'suggested_action': self._get_suggested_action(error)
        }

        self.logger.warning(
            f"域名 {domain} 证书获取失败 ({error_info['error_type']}): {error_message}，"
            f"建议: {error_info['suggested_action']}"
        )

        return error_info

    def _get_suggested_action(self, error: Exception) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        error_message = str(error).lower()

        if isinstance(error, CertificateParseError):
            return "检查服务器返回的证书格式"
        elif isinstance(error, socket.timeout):
            return "检查网络连接，考虑增加超时时间"
        elif isinstance(error, socket.gaierror):
            return "检查域名是否正确，DNS服务器是否可用"
        elif isinstance(error, ConnectionRefusedError):
            return "检查目标服务器是否运行，端口是否正确"
        elif isinstance(error, ssl.CertificateError):
            return "证书验证失败，检查证书是否有效"
        elif isinstance(error, ssl.SSLError):
            if 'certificate verify failed' in error_message:
                return "证书验证失败，可能是证书已过期、自签名或证书链问题"
            elif 'handshake failure' in error_message:
                return "SSL握手失败，检查SSL/TLS版本兼容性"
            else:
                return "SSL连接问题，检查服务器SSL配置"
        elif 'network is unreachable' in error_message:
            return "网络不可达，检查网络连接和路由"
        elif 'no route to host' in error_message:
            return "无法路由到主机，检查防火墙和网络配置"
        else:
            return "检查网络连接和服务器状态"

