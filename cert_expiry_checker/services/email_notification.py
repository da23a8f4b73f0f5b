"""
邮件通知服务
"""
import html
import smtplib
import ssl
from email.message import EmailMessage
from typing import List, Optional, Sequence
import logging

from ..models import AlertEvent, ExpiryWarning
from .alert_sinks import BufferedAlertSink, format_event


DEFAULT_SUBJECT = "CertChecker Notification"


class SMTPAlertSink(BufferedAlertSink):
    """通过SMTP发送HTML邮件的接收端，每次运行合并为一封邮件"""

    def __init__(self, host: str, port: int, sender: str, recipients: Sequence[str],
                 user: Optional[str] = None, password: Optional[str] = None,
                 starttls: bool = False, timeout: int = 30, subject: str = DEFAULT_SUBJECT):
        """
        初始化SMTP接收端

        Args:
            host: SMTP服务器地址
            port: SMTP端口
            sender: 发件人
            recipients: 收件人列表
            user: SMTP用户名，与密码同时设置时才登录
            password: SMTP密码
            starttls: 是否使用STARTTLS
            timeout: 连接超时时间（秒）
            subject: 邮件主题
        """
        super().__init__()
        self.host = host
        self.port = port
        self.sender = sender
        self.recipients = [recipient.strip() for recipient in recipients if recipient and recipient.strip()]
        self.user = user
        self.password = password
        self.starttls = starttls
        self.timeout = timeout
        self.subject = subject
        self.logger = logging.getLogger(__name__)

    def flush(self) -> bool:
        """
        发送缓存的全部告警

        Returns:
            bool: 邮件是否发送成功
        """
        events = self.drain()
        if not events:
            return True

        if not self.recipients:
            self.logger.error("未配置邮件收件人，无法发送告警邮件")
            return False

        message = self.build_message(events)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.starttls:
                    server.starttls(context=ssl.create_default_context())
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error(f"发送告警邮件失败: {type(e).__name__}: {str(e)}")
            return False

        self.logger.info(f"告警邮件发送成功，收件人数量: {len(self.recipients)}，事件数量: {len(events)}")
        return True

    def build_message(self, events: List[AlertEvent]) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = ", ".join(self.recipients)
        message["Subject"] = self.subject
        message.set_content("\n".join(format_event(event) for event in events))
        message.add_alternative(self.format_html(events), subtype="html")
        return message

    def format_html(self, events: List[AlertEvent]) -> str:
        """
        生成HTML邮件正文

        Args:
            events: 告警事件列表

        Returns:
            str: HTML内容
        """
        rows = []
        for event in events:
            level = "WARNING" if isinstance(event, ExpiryWarning) else "ERROR"
            rows.append(
                "<tr>"
                f"<th style=\"text-align:left\">{level}</th>"
                f"<td>{html.escape(event.domain)}</td>"
                f"<td>{html.escape(format_event(event))}</td>"
                "</tr>"
            )

        return (
            "<html><body>"
            f"<h1>{html.escape(self.subject)}</h1>"
            "<table cellspacing=\"1\" width=\"100%\">"
            "<tr><th style=\"text-align:left\">Level</th><th style=\"text-align:left\">Domain</th>"
            "<th style=\"text-align:left\">Message</th></tr>"
            + "".join(rows) +
            "</table></body></html>"
        )
