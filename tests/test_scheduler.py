"""Tests for the scheduled model reload."""
from app.core.config import settings
from app.scheduler import RELOAD_JOB_ID, build_scheduler, run_reload_job
from app.service import model_service


def test_no_cron_means_no_scheduler():
    assert build_scheduler(cron="") is None


def test_cron_registers_reload_job():
    scheduler = build_scheduler(cron="0 1 * * *", timezone="UTC")
    job = scheduler.get_job(RELOAD_JOB_ID)
    assert job is not None
    assert job.func is run_reload_job


def test_reload_job_swaps_model(clean_service, model_path, monkeypatch):
    monkeypatch.setattr(settings, "MODEL_URI", str(model_path))
    service = model_service.init_service()

    run_reload_job()

    assert model_service.get_service() is service
    assert model_service.is_ready()


def test_reload_job_failure_keeps_model(clean_service, model_path, tmp_path, monkeypatch):
    service = model_service.init_service(str(model_path))
    monkeypatch.setattr(settings, "MODEL_URI", str(tmp_path / "missing.txt"))

    run_reload_job()

    assert model_service.get_service() is service
    assert service.model_source == str(model_path)
