from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from app.api.v1 import router as api_router
from app.core.config import settings
from app.core.logging_config import get_logger
from app.scheduler import build_scheduler
from app.service import model_service
from app.service.notification_service import get_dispatcher

logger = get_logger("pdm.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 모델 로드 실패(ModelLoadError) 시 그대로 올려 기동 중단
    service = model_service.init_service(settings.MODEL_URI)
    logger.info(f"서비스 기동 | model={service.model_source}")

    # 알림 채널 설정 오류는 여기서 로그로 드러남 (예측은 계속 동작)
    get_dispatcher()

    scheduler = build_scheduler()
    if scheduler is not None:
        scheduler.start()

    yield

    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
    model_service.reset_service()
    logger.info("서비스 종료")


app = FastAPI(
    title="Predictive Maintenance Inference Service",
    description=(
        "회전 설비 센서 rolling 통계(온도·진동·압력·가동시간)로 **2시간 내 고장 확률**을 예측하고, "
        "설정된 임계치를 넘으면 **고장 알림**을 발송합니다. "
        "모든 엔드포인트는 `/api/v1` 하위 경로로 노출되며, Prometheus 지표 수집을 통해 "
        "모델·서비스 상태를 모니터링할 수 있습니다."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus 지표 노출
Instrumentator().instrument(app).expose(app)

# 입력 검증 실패 → 422 (거절된 원본 값은 응답에 싣지 않음: NaN/Inf 는 JSON 직렬화 불가)
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields, reasons = [], []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body") or "body"
        fields.append(field)
        reasons.append(f"{field}: {err.get('msg', 'invalid')}")
    logger.warning(f"[{request.url.path}] 입력 거절: {fields}")
    return JSONResponse(
        status_code=422,
        content={"detail": {"error": "invalid_input", "fields": fields, "msg": "; ".join(reasons)}},
    )


#라우트 등록
app.include_router(api_router, prefix="/api/v1")
