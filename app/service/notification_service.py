"""
Notification Service
====================

알림(subject, body)을 외부 채널로 전달합니다.

• LogAlertDispatcher     : 애플리케이션 로그로 출력 (기본값)
• SmtpAlertDispatcher    : 평문 이메일 (STARTTLS/로그인 옵션)
• WebhookAlertDispatcher : JSON POST (httpx)

전송은 fire-and-forget 입니다. `dispatch_alert()` 가 모든 실패를 로그로 남기고
삼키므로 예측 응답 경로로 전파되지 않습니다. 재시도/큐잉은 하지 않습니다.
"""
from __future__ import annotations

import abc
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from functools import lru_cache
from typing import Optional

import httpx

from app.core.config import Settings, get_settings
from app.core.exceptions import DispatchError
from app.core.logging_config import get_logger
from app.core.metrics import ALERTS
from app.service.alert_service import AlertMessage

logger = get_logger("pdm.alert")


class AlertDispatcher(abc.ABC):
    """알림 전송 채널 베이스"""

    @abc.abstractmethod
    def send(self, subject: str, body: str) -> None:
        """전송 실패 시 DispatchError"""


class LogAlertDispatcher(AlertDispatcher):
    def send(self, subject: str, body: str) -> None:
        logger.warning(f"[ALERT] {subject}\n{body}")


class SmtpAlertDispatcher(AlertDispatcher):
    def __init__(
        self,
        host: str,
        port: int,
        sender_email: str,
        recipient_email: str,
        sender_name: str = "",
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender_email = sender_email
        self.recipient_email = recipient_email
        self.sender_name = sender_name
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def _build(self, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((self.sender_name, self.sender_email))
        msg["To"] = self.recipient_email
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def send(self, subject: str, body: str) -> None:
        msg = self._build(subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as client:
                if self.use_tls:
                    client.starttls()
                if self.password:
                    client.login(self.sender_email, self.password)
                client.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise DispatchError(f"SMTP delivery to {self.recipient_email} failed: {e}") from e
        logger.info(f"알림 메일 발송 → {self.recipient_email}")


class WebhookAlertDispatcher(AlertDispatcher):
    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout

    def send(self, subject: str, body: str) -> None:
        try:
            with httpx.Client(timeout=self.timeout) as client:
                r = client.post(self.url, json={"subject": subject, "body": body})
                r.raise_for_status()
        except httpx.HTTPError as e:
            raise DispatchError(f"webhook delivery to {self.url} failed: {e}") from e
        logger.info(f"알림 webhook 발송 → {self.url}")


# ────────────────────────────────────────────────────────────
# 팩토리
# ────────────────────────────────────────────────────────────
def build_dispatcher(cfg: Settings) -> AlertDispatcher:
    channel = cfg.ALERT_CHANNEL.lower()
    if channel == "smtp":
        if not cfg.ALERT_SENDER_EMAIL or not cfg.ALERT_RECIPIENT_EMAIL:
            raise ValueError("ALERT_CHANNEL=smtp requires ALERT_SENDER_EMAIL and ALERT_RECIPIENT_EMAIL")
        return SmtpAlertDispatcher(
            host=cfg.SMTP_HOST,
            port=cfg.SMTP_PORT,
            sender_email=cfg.ALERT_SENDER_EMAIL,
            recipient_email=cfg.ALERT_RECIPIENT_EMAIL,
            sender_name=cfg.ALERT_SENDER_NAME,
            password=cfg.SMTP_PASSWORD,
            use_tls=cfg.SMTP_USE_TLS,
            timeout=cfg.SMTP_TIMEOUT,
        )
    if channel == "webhook":
        if not cfg.ALERT_WEBHOOK_URL:
            raise ValueError("ALERT_CHANNEL=webhook requires ALERT_WEBHOOK_URL")
        return WebhookAlertDispatcher(cfg.ALERT_WEBHOOK_URL, timeout=cfg.ALERT_WEBHOOK_TIMEOUT)
    if channel == "log":
        return LogAlertDispatcher()
    raise ValueError(f"unknown ALERT_CHANNEL: {cfg.ALERT_CHANNEL!r}")


@lru_cache
def get_dispatcher() -> Optional[AlertDispatcher]:
    """
    FastAPI dependency – 프로세스 당 1개.
    채널 설정이 잘못되면 에러 로그 후 None (알림만 비활성화, 예측은 계속)
    """
    try:
        return build_dispatcher(get_settings())
    except ValueError as e:
        logger.error(f"알림 채널 설정 오류 – 알림 비활성화: {e}")
        return None


def dispatch_alert(dispatcher: Optional[AlertDispatcher], message: AlertMessage) -> bool:
    """
    백그라운드 전송 래퍼. 성공 여부만 반환하고 예외는 올리지 않습니다.
    """
    if dispatcher is None:
        ALERTS.labels("failed").inc()
        logger.error(f"알림 채널 미구성 – 전송 생략: {message.subject}")
        return False
    try:
        dispatcher.send(message.subject, message.body)
    except Exception as e:
        ALERTS.labels("failed").inc()
        logger.exception(f"알림 전송 실패 ({type(dispatcher).__name__}): {e}")
        return False
    ALERTS.labels("sent").inc()
    return True
