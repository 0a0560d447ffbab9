"""
app.core.config
---------------
.env 기반 런타임 설정 (Pydantic BaseSettings)

• Settings      : 프로세스 시작 시 1회 로드 후 캐싱
• AlertSettings : 알림 임계치 전용, 요청마다 다시 읽음 (재시작 없이 튜닝)
"""

import logging
from functools import lru_cache
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.constants import DEFAULT_FAILURE_THRESHOLD

_ENV_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    case_sensitive=False,
    extra="ignore",         # 알 수 없는 환경변수 무시
)


class Settings(BaseSettings):
    # ───── 모델 아티팩트 ─────
    # 로컬 경로 또는 s3://bucket/key
    MODEL_URI: str = Field(default="models/failure_model.txt", alias="MODEL_URI")
    MODEL_RELOAD_CRON: str | None = Field(default=None, alias="MODEL_RELOAD_CRON")   # 예) "0 1 * * *"
    SCHEDULER_TIMEZONE: str = Field(default="UTC", alias="SCHEDULER_TIMEZONE")

    # ───── AWS & S3 ─────
    AWS_REGION: str = Field(default="ap-northeast-2", alias="AWS_REGION")
    AWS_ACCESS_KEY_ID: str | None = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    AWS_SECRET_ACCESS_KEY: str | None = Field(default=None, alias="AWS_SECRET_ACCESS_KEY")

    # ───── 알림 채널 ─────
    ALERT_CHANNEL: str = Field(default="log", alias="ALERT_CHANNEL")            # log / smtp / webhook

    SMTP_HOST: str = Field(default="smtp.gmail.com", alias="SMTP_HOST")
    SMTP_PORT: int = Field(default=587, alias="SMTP_PORT")
    SMTP_USE_TLS: bool = Field(default=True, alias="SMTP_USE_TLS")
    SMTP_TIMEOUT: float = Field(default=10.0, alias="SMTP_TIMEOUT")
    SMTP_PASSWORD: str | None = Field(default=None, alias="SMTP_PASSWORD")
    ALERT_SENDER_NAME: str = Field(default="Predictive Maintenance", alias="ALERT_SENDER_NAME")
    ALERT_SENDER_EMAIL: str | None = Field(default=None, alias="ALERT_SENDER_EMAIL")
    ALERT_RECIPIENT_EMAIL: str | None = Field(default=None, alias="ALERT_RECIPIENT_EMAIL")

    ALERT_WEBHOOK_URL: str | None = Field(default=None, alias="ALERT_WEBHOOK_URL")
    ALERT_WEBHOOK_TIMEOUT: float = Field(default=5.0, alias="ALERT_WEBHOOK_TIMEOUT")

    # ───── HTTP ─────
    CORS_ORIGINS: list[str] = Field(default=["http://localhost:64675"], alias="CORS_ORIGINS")

    # ───── 로깅 ─────
    LOG_LEVEL: str = Field(default="INFO", alias="LOG_LEVEL")
    LOG_FORMAT: str = Field(default="TEXT", alias="LOG_FORMAT")        # TEXT / JSON
    LOG_EMOJI: bool = Field(default=True, alias="LOG_EMOJI")

    model_config = _ENV_CONFIG


class AlertSettings(BaseSettings):
    FAILURE_THRESHOLD: float = Field(default=DEFAULT_FAILURE_THRESHOLD, alias="FAILURE_THRESHOLD")

    model_config = _ENV_CONFIG


@lru_cache
def get_settings() -> Settings:
    """FastAPI dependency 또는 일반 import 에서 호출"""
    return Settings()


# logging_config 가 settings 를 import 하므로 여기서는 표준 getLogger 사용 (pdm 핸들러 상속)
logger = logging.getLogger("pdm.config")

_last_threshold: float = DEFAULT_FAILURE_THRESHOLD


def get_failure_threshold() -> float:
    """
    요청마다 환경변수/.env 를 다시 읽어 현재 임계치를 반환 (캐싱 없음).
    값이 잘못되면 에러 로그를 남기고 마지막 정상값을 유지합니다.
    """
    global _last_threshold
    try:
        _last_threshold = AlertSettings().FAILURE_THRESHOLD
    except ValidationError as e:
        logger.error(f"FAILURE_THRESHOLD 파싱 실패 – 직전 값 {_last_threshold} 유지: {e.errors()[0]['msg']}")
    return _last_threshold


settings = get_settings()   # 전역 싱글턴
