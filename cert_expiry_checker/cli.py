"""
命令行入口，适合由cron定时调用

退出码:
  0 - 没有即将过期或检查失败的证书
  1 - 存在即将过期或检查失败的证书
  2 - 配置错误，或 --check 发现问题
"""
import argparse
import sys
from typing import List, Optional

from .lambda_handler import CertExpiryMonitor
from .services.config import AppConfig, ConfigValidator, load_config
from .services.error_handler import ConfigurationError


EXIT_OK = 0
EXIT_ALERTS = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cert-expiry-checker",
        description="检查域名SSL证书的过期时间，在提醒期内发送通知"
    )
    parser.add_argument("--days", type=int, help="提前提醒天数（覆盖 NOTIFICATION_DAYS）")
    parser.add_argument("--domains-file", help="域名列表文件，每行一个域名（覆盖 DOMAINS_FILE）")
    parser.add_argument("--domain", action="append", dest="domains", metavar="DOMAIN",
                        help="要检查的域名，可重复指定；指定后忽略配置中的域名列表")
    parser.add_argument("--timeout", type=int, help="连接超时时间（秒）")
    parser.add_argument("--workers", type=int, help="并发线程数，大于1时并发检查")
    parser.add_argument("--no-verify", action="store_true", help="不校验证书链，已过期的证书也能读取过期时间")
    parser.add_argument("--log-level", help="日志级别")
    parser.add_argument("--check", action="store_true",
                        help="只检查配置和SNS连接，不检查证书")
    return parser


def run_health_check(config: AppConfig) -> int:
    """
    打印配置摘要和健康检查结果

    Args:
        config: 运行配置

    Returns:
        int: 健康时返回0，否则返回2
    """
    print(ConfigValidator(config).get_configuration_summary())

    health_status = CertExpiryMonitor(config).validate_system_health()
    for name, component in health_status['components'].items():
        print(f"{'✅' if component['healthy'] else '❌'} {name}")
    for issue in health_status['issues']:
        print(f"  • {issue}", file=sys.stderr)

    return EXIT_OK if health_status['overall_healthy'] else EXIT_CONFIG_ERROR


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config().with_overrides(
            notification_days=args.days,
            domains_file=args.domains_file,
            connect_timeout=args.timeout,
            max_workers=args.workers,
            verify_certificates=False if args.no_verify else None,
            log_level=args.log_level.upper() if args.log_level else None
        )

        if args.check:
            return run_health_check(config)

        if not args.domains:
            validation = ConfigValidator(config).validate()
            if not validation['is_valid']:
                raise ConfigurationError("; ".join(validation['errors']))

        summary = CertExpiryMonitor(config).execute(domains=args.domains)
    except (ConfigurationError, OSError) as e:
        print(f"配置错误: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    return EXIT_ALERTS if summary.has_alerts else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
