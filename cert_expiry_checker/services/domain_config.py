"""
域名配置管理服务
"""
import os
import re
from typing import Iterable, List, Optional
import logging

from ..interfaces import DomainConfigManagerInterface
from .error_handler import ConfigurationError


class DomainConfigManager(DomainConfigManagerInterface):
    """域名配置管理器实现"""

    def __init__(self, env_var_name: str = "DOMAINS", domains_file: Optional[str] = None,
                 domains: Optional[str] = None):
        """
        初始化域名配置管理器

        Args:
            env_var_name: 环境变量名称，默认为"DOMAINS"
            domains_file: 域名列表文件，每行一个域名
            domains: 逗号分隔的域名，设置后不再读取环境变量
        """
        self.env_var_name = env_var_name
        self.domains_file = domains_file
        self.domains = domains
        self.logger = logging.getLogger(__name__)

        # 域名格式验证正则表达式
        self.domain_pattern = re.compile(
            r'^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}$'
        )

    def get_domains(self) -> List[str]:
        """
        获取域名列表，先读文件再读逗号分隔的列表，保持原有顺序并去重

        Returns:
            List[str]: 域名列表

        Raises:
            ConfigurationError: 域名列表文件无法读取
        """
        raw_domains = []

        if self.domains_file:
            raw_domains.extend(self._read_domains_file(self.domains_file))

        domains_str = self.domains if self.domains is not None else os.getenv(self.env_var_name, "")
        if domains_str.strip():
            raw_domains.extend(domain.strip() for domain in domains_str.split(','))

        valid_domains = self._clean_domains(raw_domains)

        if not valid_domains:
            self.logger.warning("没有找到有效的域名")
        else:
            self.logger.info(f"成功加载 {len(valid_domains)} 个域名")

        return valid_domains

    def _read_domains_file(self, path: str) -> List[str]:
        """
        读取域名列表文件，空行和#开头的行会被跳过

        Args:
            path: 文件路径

        Returns:
            List[str]: 原始域名列表
        """
        try:
            with open(path, encoding='utf-8') as domain_file:
                lines = [line.strip() for line in domain_file]
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"无法读取域名列表文件 {path}: {str(e)}")

        return [line for line in lines if line and not line.startswith('#')]

    def _clean_domains(self, raw_domains: Iterable[str]) -> List[str]:
        valid_domains = []
        for domain in raw_domains:
            if not domain:  # 跳过空字符串
                continue
            cleaned_domain = self._clean_domain(domain)
            if not self.validate_domain(cleaned_domain):
                self.logger.warning(f"跳过无效域名: {domain}")
            elif cleaned_domain in valid_domains:
                self.logger.debug(f"跳过重复域名: {domain}")
            else:
                valid_domains.append(cleaned_domain)
        return valid_domains

    def validate_domain(self, domain: str) -> bool:
        """
        验证域名格式

        Args:
            domain: 要验证的域名

        Returns:
            bool: 域名是否有效
        """
        if not domain or not isinstance(domain, str):
            return False

        if len(domain) > 253:
            return False

        if domain.startswith('.') or domain.endswith('.'):
            return False

        return bool(self.domain_pattern.match(domain))

    def _clean_domain(self, domain: str) -> str:
        """
        清理域名格式

        Args:
            domain: 原始域名

        Returns:
            str: 清理后的域名
        """
        if not domain:
            return ""

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
