"""
证书检查运行器
"""
import threading
import time
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional

from .interfaces import AlertSinkInterface, CertificateFetcherInterface
from .models import ExpiryWarning, FetchFailure, FetchResult, RunSummary, CONNECTION_ERROR
from .services.expiry_evaluator import ExpiryEvaluator


class CertificateExpiryRunner:
    """
    按顺序检查域名列表并把结果发送给告警接收端

    运行器本身不判定是否过期，只负责调度。
    相同输入和固定时钟的两次运行产生相同的事件序列。
    """

    def __init__(self, fetcher: CertificateFetcherInterface, evaluator: ExpiryEvaluator,
                 sink: AlertSinkInterface):
        self.fetcher = fetcher
        self.evaluator = evaluator
        self.sink = sink
        self.logger = logging.getLogger(__name__)

    def run(self, domains: Iterable[str], cancel_event: Optional[threading.Event] = None,
            deadline: Optional[float] = None) -> RunSummary:
        """
        逐个检查域名

        Args:
            domains: 域名列表
            cancel_event: 设置后在当前域名完成后停止
            deadline: 运行超时时间（秒），超时后在当前域名完成后停止

        Returns:
            RunSummary: 运行结果
        """
        domains = list(domains)
        summary = RunSummary(total_domains=len(domains))
        start_time = time.monotonic()

        for domain in domains:
            if self._should_stop(cancel_event, deadline, start_time):
                summary.cancelled = True
                break

            if not domain or not domain.strip():
                summary.skipped_domains += 1
                continue

            self._handle_result(self.fetcher.fetch(domain.strip()), summary)

        summary.execution_time = time.monotonic() - start_time
        return summary

    def run_concurrent(self, domains: Iterable[str], max_workers: int = 10,
                       cancel_event: Optional[threading.Event] = None,
                       deadline: Optional[float] = None) -> RunSummary:
        """
        使用线程池并发获取证书，按列表顺序判定并发送事件

        Args:
            domains: 域名列表
            max_workers: 最大线程数
            cancel_event: 设置后不再处理剩余域名
            deadline: 运行超时时间（秒）

        Returns:
            RunSummary: 运行结果
        """
        domains = list(domains)
        summary = RunSummary(total_domains=len(domains))
        start_time = time.monotonic()

        targets: List[str] = []
        for domain in domains:
            if not domain or not domain.strip():
                summary.skipped_domains += 1
            else:
                targets.append(domain.strip())

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(self.fetcher.fetch, domain) for domain in targets]

            for index, future in enumerate(futures):
                if self._should_stop(cancel_event, deadline, start_time):
                    summary.cancelled = True
                    for pending in futures[index:]:
                        pending.cancel()
                    break

                self._handle_result(future.result(), summary)

        summary.execution_time = time.monotonic() - start_time
        return summary

    def _should_stop(self, cancel_event: Optional[threading.Event], deadline: Optional[float],
                     start_time: float) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            self.logger.warning("收到中止信号，停止检查")
            return True
        if deadline is not None and time.monotonic() - start_time >= deadline:
            self.logger.warning(f"运行超过 {deadline} 秒，停止检查")
            return True
        return False

    def _handle_result(self, result: FetchResult, summary: RunSummary):
        summary.checked_domains += 1

        if not result.ok:
            error = result.error
            event = FetchFailure(
                domain=result.domain,
                reason=error.reason if error else "证书过期时间未知",
                error_type=error.error_type if error else CONNECTION_ERROR
            )
            self.sink.emit_fetch_failure(event)
            summary.record(event)
            return

        now = self.evaluator.now()
        if self.evaluator.should_notify(result.expiry_date, now):
            event = ExpiryWarning(
                domain=result.domain,
                window_days=self.evaluator.window_days,
                expiry_date=result.expiry_date,
                days_until_expiry=self.evaluator.days_until_expiry(result.expiry_date, now)
            )
            self.sink.emit_expiry_warning(event)
            summary.record(event)
        else:
            self.logger.info(
                f"证书正常 - 域名: {result.domain}, 过期时间: {result.expiry_date.isoformat()}"
            )
