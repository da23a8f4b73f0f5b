"""
证书获取服务
"""
import ssl
import socket
from datetime import datetime, timezone
from typing import Optional
import logging

from cryptography import x509

from ..interfaces import CertificateFetcherInterface
from ..models import FetchResult, FetchError, INVALID_DOMAIN
from .error_handler import FetchErrorHandler, CertificateParseError


DEFAULT_TIMEOUT = 30
DEFAULT_PORT = 443


class CertificateFetcher(CertificateFetcherInterface):
    """证书获取器实现"""

    def __init__(self, timeout: int = DEFAULT_TIMEOUT, port: int = DEFAULT_PORT, verify: bool = True):
        """
        初始化证书获取器

        Args:
            timeout: 连接超时时间（秒）
            port: SSL端口，默认443
            verify: 是否校验证书链；关闭后已过期或自签名的证书也能读取过期时间
        """
        self.timeout = timeout
        self.port = port
        self.verify = verify
        self.logger = logging.getLogger(__name__)
        self.error_handler = FetchErrorHandler()

    def fetch(self, domain: str) -> FetchResult:
        """
        获取单个域名证书的过期时间

        Args:
            domain: 要检查的域名

        Returns:
            FetchResult: 成功时带过期时间，失败时带错误信息
        """
        clean_domain = self._clean_domain(domain or "")
        if not clean_domain:
            return FetchResult.failed(FetchError(
                domain=domain or "",
                reason="域名为空",
                error_type=INVALID_DOMAIN
            ))

        try:
            cert = self._get_peer_certificate(clean_domain)
            expiry_date = self._parse_expiry_date(cert)
            issuer = self._parse_issuer(cert)
        except Exception as e:
            return FetchResult.failed(self.error_handler.classify(clean_domain, e))

        self.logger.debug(f"域名 {clean_domain} 证书过期时间: {expiry_date.isoformat()}")
        return FetchResult.known(clean_domain, expiry_date, issuer)

    def _clean_domain(self, domain: str) -> str:
        """
        清理域名格式

        Args:
            domain: 原始域名

        Returns:
            str: 清理后的域名
        """
        domain = domain.strip()

        # 移除协议前缀
        if domain.startswith('https://'):
            domain = domain[8:]
        elif domain.startswith('http://'):
            domain = domain[7:]

        # 移除路径部分
        if '/' in domain:
            domain = domain.split('/')[0]

        # 移除端口号
        if ':' in domain:
            domain = domain.split(':')[0]

        return domain.strip().lower()

    def _create_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self.verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _get_peer_certificate(self, domain: str):
        """
        获取对端证书

        校验开启时返回解析后的证书字典，关闭时返回DER编码的原始证书。
        连接在离开 with 块时关闭，无论成功与否。

        Args:
            domain: 域名

        Returns:
            dict | bytes: 证书

        Raises:
            OSError: 连接失败或握手失败
            CertificateParseError: 未获取到证书
        """
        context = self._create_context()

        with socket.create_connection((domain, self.port), timeout=self.timeout) as sock:
            with context.wrap_socket(sock, server_hostname=domain) as ssock:
                cert = ssock.getpeercert(binary_form=not self.verify)

        if not cert:
            raise CertificateParseError(f"无法获取域名 {domain} 的SSL证书")

        return cert

    def _parse_expiry_date(self, cert) -> datetime:
        """
        解析证书过期时间

        Args:
            cert: 证书字典或DER编码的证书

        Returns:
            datetime: UTC过期时间
        """
        if isinstance(cert, (bytes, bytearray)):
            try:
                certificate = x509.load_der_x509_certificate(bytes(cert))
            except ValueError as e:
                raise CertificateParseError(f"证书解析失败: {e}")
            return certificate.not_valid_after_utc

        not_after = cert.get('notAfter')
        if not not_after:
            raise CertificateParseError("证书中未找到过期时间信息")

        # 解析时间格式：'Dec 31 23:59:59 2024 GMT'
        try:
            expiry_date = datetime.strptime(not_after, '%b %d %H:%M:%S %Y %Z')
        except ValueError as e:
            raise CertificateParseError(f"证书过期时间格式无效: {not_after}") from e

        return expiry_date.replace(tzinfo=timezone.utc)

    def _parse_issuer(self, cert) -> Optional[str]:
        """
        解析证书颁发者

        Args:
            cert: 证书字典或DER编码的证书

        Returns:
            Optional[str]: 证书颁发者
        """
        if isinstance(cert, (bytes, bytearray)):
            certificate = x509.load_der_x509_certificate(bytes(cert))
            for oid in (x509.NameOID.ORGANIZATION_NAME, x509.NameOID.COMMON_NAME):
                attributes = certificate.issuer.get_attributes_for_oid(oid)
                if attributes:
                    return attributes[0].value
            return None

        issuer = cert.get('issuer', [])

        # 查找组织名称
        for item in issuer:
            if item[0][0] == 'organizationName':
                return item[0][1]

        # 如果没有找到组织名称，查找通用名称
        for item in issuer:
            if item[0][0] == 'commonName':
                return item[0][1]

        return None
