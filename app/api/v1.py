from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from app.core.config import get_failure_threshold
from app.core.exceptions import InvalidInputError, ModelLoadError, ScoringError
from app.core.logging_config import get_logger
from app.core.metrics import PREDICTIONS
from app.schemas import FeatureVector, PredictionResult
from app.service import alert_service, model_service
from app.service.model_service import PredictionService
from app.service.notification_service import AlertDispatcher, dispatch_alert, get_dispatcher

router = APIRouter()
logger = get_logger("pdm.api")       # 레벨·포맷은 logging_config.py가 관리


def get_prediction_service() -> PredictionService:
    service = model_service.get_service()
    if service is None:
        raise HTTPException(status_code=503, detail="MODEL is NOT loaded")
    return service


# ───────────────────────── health ─────────────────────────
@router.get("/health", summary="Health Check")
def health():
    if model_service.is_ready():
        logger.debug("HEALTH OK – 모델 로드 완료")
        return {"status": "ok", "message": "API is running and model is loaded."}
    logger.error("HEALTH ERROR – 모델 미로드")
    raise HTTPException(status_code=503,
                        detail="API is running but MODEL is NOT loaded")


# ───────────────────────── predict ────────────────────────
@router.post("/predict", summary="Predict near-term failure", response_model=PredictionResult)
def predict(
    vector: FeatureVector,
    background_tasks: BackgroundTasks,
    service: PredictionService = Depends(get_prediction_service),
    dispatcher: Optional[AlertDispatcher] = Depends(get_dispatcher),
    threshold: float = Depends(get_failure_threshold),
):
    logger.info(f"[predict] 추론 요청 machineId={vector.machine_id} ts={vector.timestamp}")

    try:
        result = service.predict(vector)
    except InvalidInputError as e:
        PREDICTIONS.labels("invalid_input").inc()
        logger.warning(f"[predict] 입력 거절: {e}")
        raise HTTPException(status_code=422,
                            detail={"error": "invalid_input", "fields": e.fields, "msg": str(e)})
    except ScoringError as e:
        PREDICTIONS.labels("scoring_error").inc()
        raise HTTPException(status_code=500,
                            detail={"error": "scoring_error", "msg": str(e)})
    PREDICTIONS.labels("ok").inc()

    # 알림은 응답 이후 백그라운드 전송 (실패해도 응답에 영향 없음)
    alert = alert_service.evaluate(vector, result, threshold)
    if alert is not None:
        logger.warning(f"[predict] 고장 확률 {result.probability:.2%} > {threshold} → 알림 예약 "
                       f"(machineId={vector.machine_id})")
        background_tasks.add_task(dispatch_alert, dispatcher, alert)

    return result


# ───────────────────────── reload ─────────────────────────
@router.post("/model/reload", summary="Reload model artifact")
def reload_model():
    logger.info("모델 리로드 요청")
    try:
        service = model_service.reload_service()
    except ModelLoadError as e:
        logger.error(f"모델 리로드 실패 (기존 모델 유지): {e}")
        raise HTTPException(status_code=500, detail={"error": "model_load_error", "msg": str(e)})
    return {"status": "ok", "model": service.model_source}
