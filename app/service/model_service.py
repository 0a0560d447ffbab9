"""
Model Service
==============

• LightGBM 이진 분류 Booster 를 로컬 경로 또는 S3 에서 가져와 메모리에 1회 로드
• PredictionService 가 모델 1개를 프로세스 수명 동안 소유, Lock 으로 추론 직렬화
• 로드 실패는 ModelLoadError 로 즉시 실패 (부분/무모델 상태로 기동하지 않음)

환경변수 및 공통 상수는 app.core.* 모듈에서 공급받습니다.
"""
from __future__ import annotations

import math
import threading
from pathlib import Path
from typing import Any, Mapping, NamedTuple, Optional, Union

import boto3
import lightgbm as lgb
import pandas as pd
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings          # Pydantic BaseSettings instance
from app.core.exceptions import InvalidInputError, ModelLoadError, ScoringError
from app.core.logging_config import get_logger
from app.schemas import FeatureVector, PredictionResult, check_feature_schema, ensure_complete

logger = get_logger("pdm.model")


# ────────────────────────────────────────────────────────────
# S3 헬퍼
# ────────────────────────────────────────────────────────────
def _get_s3_client():
    """
    Boto3 S3 클라이언트를 생성합니다.

    • IAM Role/EKS IRSA 등을 사용할 경우 access_key 없이 호출해도 무방합니다.
    """
    if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
        logger.debug("S3: key/secret 기반 인증 사용")
        return boto3.client(
            "s3",
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION,
        )
    logger.debug("S3: IAM Role 기반 인증 사용")
    return boto3.client("s3", region_name=settings.AWS_REGION)


def split_s3_uri(uri: str) -> tuple[str, str]:
    """s3://bucket/key → (bucket, key)"""
    bucket, _, key = uri[len("s3://"):].partition("/")
    if not bucket or not key:
        raise ValueError(f"malformed S3 URI: {uri}")
    return bucket, key


def _read_artifact(uri: str) -> str:
    """아티팩트 텍스트 읽기. 실패 시 ModelLoadError."""
    if uri.startswith("s3://"):
        try:
            bucket, key = split_s3_uri(uri)
        except ValueError as e:
            raise ModelLoadError(str(e)) from e
        logger.info(f"모델 다운로드: s3://{bucket}/{key}")
        try:
            obj = _get_s3_client().get_object(Bucket=bucket, Key=key)
            return obj["Body"].read().decode("utf-8")
        except (ClientError, BotoCoreError) as e:
            raise ModelLoadError(f"S3 artifact unavailable: {uri} ({e})") from e
        except UnicodeDecodeError as e:
            raise ModelLoadError(f"artifact is not a text model: {uri}") from e

    path = Path(uri)
    if not path.is_file():
        raise ModelLoadError(f"model artifact not found: {path}")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ModelLoadError(f"model artifact unreadable: {path} ({e})") from e


def _parse_header(model_str: str) -> dict[str, str]:
    """LightGBM 텍스트 모델 헤더(key=value) 파싱 – 첫 `Tree=` 이전까지만"""
    header: dict[str, str] = {}
    for line in model_str.splitlines():
        if line.startswith("Tree="):
            break
        key, sep, value = line.partition("=")
        if sep:
            header[key.strip()] = value.strip()
    return header


# ────────────────────────────────────────────────────────────
# FailureModel
# ────────────────────────────────────────────────────────────
class ScoreResult(NamedTuple):
    probability: float
    raw_score: float
    decision: bool


class FailureModel:
    """
    로드 완료된 LightGBM Booster 래퍼.

    `score()` 는 입력과 아티팩트만의 순수 함수이며 Booster 상태를 바꾸지 않습니다.
    동시 호출 안전성은 보장하지 않으므로 PredictionService 가 직렬화합니다.
    """

    def __init__(self, booster: lgb.Booster, source: str = "<memory>"):
        self._booster = booster
        self.feature_names: list[str] = list(booster.feature_name())
        self.source = source

    @classmethod
    def load(cls, uri: str) -> "FailureModel":
        """로컬 경로 또는 s3:// URI 에서 모델 로드"""
        return cls.from_string(_read_artifact(uri), source=uri)

    @classmethod
    def from_string(cls, model_str: str, source: str = "<memory>") -> "FailureModel":
        header = _parse_header(model_str)

        objective = header.get("objective")
        if not objective:
            raise ModelLoadError(f"not a LightGBM model (objective missing): {source}")
        if not objective.startswith("binary"):
            raise ModelLoadError(f"binary objective required, got {objective!r}: {source}")

        feature_names = header.get("feature_names", "").split()
        problems = check_feature_schema(feature_names)
        if problems:
            raise ModelLoadError(f"feature schema mismatch ({source}): {problems}")

        try:
            booster = lgb.Booster(model_str=model_str)
        except Exception as e:
            raise ModelLoadError(f"LightGBM parse failed: {source} ({e})") from e

        logger.info(f"모델 로드 성공 ← {source} (objective={objective})")
        return cls(booster, source=source)

    def score(self, vector: FeatureVector) -> ScoreResult:
        X = pd.DataFrame([vector.to_row()], columns=self.feature_names)
        raw = float(self._booster.predict(X, raw_score=True)[0])
        prob = float(self._booster.predict(X)[0])
        # LightGBM binary: margin 0 이 모델 자체의 결정 경계
        return ScoreResult(probability=prob, raw_score=raw, decision=raw > 0.0)


# ────────────────────────────────────────────────────────────
# PredictionService
# ────────────────────────────────────────────────────────────
class PredictionService:
    """
    모델 1개를 독점 소유하는 추론 서비스.

    동시성 계약: `predict()` 는 내부 Lock 구간에서만 모델을 호출합니다.
    추론은 ms 단위이므로 임계 구역은 짧습니다.
    """

    def __init__(self, model: Any):
        problems = check_feature_schema(list(getattr(model, "feature_names", [])))
        if problems:
            raise ModelLoadError(f"model schema incompatible with FeatureVector: {problems}")
        self._model = model
        self._lock = threading.Lock()

    @classmethod
    def from_uri(cls, uri: str) -> "PredictionService":
        return cls(FailureModel.load(uri))

    @property
    def model_source(self) -> str:
        return getattr(self._model, "source", type(self._model).__name__)

    def swap_model(self, model: Any) -> None:
        """명시적 리로드 전용: 검증 후 Lock 안에서 교체"""
        problems = check_feature_schema(list(getattr(model, "feature_names", [])))
        if problems:
            raise ModelLoadError(f"model schema incompatible with FeatureVector: {problems}")
        with self._lock:
            self._model = model
        logger.info(f"모델 교체 완료 → {self.model_source}")

    def predict(self, vector: Union[FeatureVector, Mapping[str, Any]]) -> PredictionResult:
        if not isinstance(vector, FeatureVector):
            if not isinstance(vector, Mapping):
                raise InvalidInputError(f"unsupported input type: {type(vector).__name__}")
            vector = FeatureVector.from_payload(vector)
        ensure_complete(vector)

        try:
            with self._lock:
                probability, raw_score, decision = self._model.score(vector)
            probability, raw_score = float(probability), float(raw_score)
        except Exception as e:
            logger.exception(f"[predict] 추론 오류 machine_id={vector.machine_id}: {e}")
            raise ScoringError(f"model failed to score machine {vector.machine_id}: {e}") from e

        if not (math.isfinite(probability) and math.isfinite(raw_score)) or not 0.0 <= probability <= 1.0:
            logger.error(f"[predict] 비정상 출력 prob={probability} score={raw_score}")
            raise ScoringError(
                f"model returned out-of-range output (probability={probability}, score={raw_score})"
            )

        result = PredictionResult(
            will_fail_soon=bool(decision),
            probability=probability,
            score=raw_score,
        )
        logger.debug(f"[predict] machine_id={vector.machine_id} → {result}")
        return result


# ────────────────────────────────────────────────────────────
# 프로세스 싱글턴
# ────────────────────────────────────────────────────────────
_service: Optional[PredictionService] = None
_service_lock = threading.Lock()


def init_service(uri: Optional[str] = None) -> PredictionService:
    """기동 시 1회 호출. 실패하면 ModelLoadError 를 그대로 올려 기동 중단."""
    uri = uri or settings.MODEL_URI
    with _service_lock:
        return _init_locked(uri)


def get_service() -> Optional[PredictionService]:
    return _service


def is_ready() -> bool:
    """헬스체크용 헬퍼: 모델이 메모리에 올라왔는지 여부."""
    return _service is not None


def reload_service(uri: Optional[str] = None) -> PredictionService:
    """
    외부 트리거(API/스케줄러) 전용 리로드.
    새 모델 로드에 실패하면 ModelLoadError 를 올리고 기존 모델은 그대로 유지됩니다.
    """
    uri = uri or settings.MODEL_URI
    with _service_lock:
        if _service is None:
            return _init_locked(uri)
        _service.swap_model(FailureModel.load(uri))
        return _service


def _init_locked(uri: str) -> PredictionService:
    global _service
    _service = PredictionService.from_uri(uri)
    return _service


def reset_service() -> None:
    global _service
    with _service_lock:
        _service = None
