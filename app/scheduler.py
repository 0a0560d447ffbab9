"""app/scheduler.py
FastAPI 프로세스 내부에서 동작하는 BackgroundScheduler.
MODEL_RELOAD_CRON 이 설정된 경우에만 모델 리로드 잡을 등록합니다.

* 재학습 파이프라인이 latest 키로 승격한 아티팩트를 서빙 레플리카가 주기적으로 반영
* 리로드 실패 시 기존 모델로 계속 서빙
"""
from __future__ import annotations

from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings
from app.core.exceptions import ModelLoadError
from app.core.logging_config import get_logger
from app.service import model_service

logger = get_logger("pdm.scheduler")

RELOAD_JOB_ID = "model_reload"


def run_reload_job() -> None:
    logger.info(f"Reload job start | uri={settings.MODEL_URI}")
    try:
        service = model_service.reload_service(settings.MODEL_URI)
    except ModelLoadError as e:
        logger.error(f"Reload job failed, keeping current model: {e}")
        return
    logger.info(f"Reload job done | model={service.model_source}")


def build_scheduler(cron: Optional[str] = None, timezone: Optional[str] = None) -> Optional[BackgroundScheduler]:
    """cron 미설정 시 None (스케줄러 미사용)"""
    cron = cron if cron is not None else settings.MODEL_RELOAD_CRON
    if not cron:
        return None
    tz = timezone or settings.SCHEDULER_TIMEZONE
    scheduler = BackgroundScheduler(timezone=tz)
    scheduler.add_job(
        run_reload_job,
        CronTrigger.from_crontab(cron, timezone=tz),
        id=RELOAD_JOB_ID,
        replace_existing=True,
    )
    logger.info(f"모델 리로드 스케줄 등록 | cron='{cron}' tz={tz}")
    return scheduler
