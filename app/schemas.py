"""
app.schemas
-----------
추론 파이프라인 데이터 모델.

• FeatureVector    : 관측 1건 (외부 JSON 이름은 constants.FIELD_MAP 으로 바인딩)
• PredictionResult : 추론 결과 1건
"""
from __future__ import annotations

import math
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.core.constants import EXTERNAL_NAMES, FEATURE_COLS
from app.core.exceptions import InvalidInputError


class FeatureVector(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        allow_inf_nan=False,                                  # NaN / ±Inf 거절
        populate_by_name=True,                                # 내부 이름도 허용
        alias_generator=lambda name: EXTERNAL_NAMES.get(name, name),
    )

    machine_id: int = Field(ge=0)     # 1.0 허용, 1.5 거절
    timestamp: str                    # 리포트용, 추론에 사용하지 않음

    temperature_last: float
    vibration_last: float
    pressure_last: float
    runtime_hours_last: float

    temperature_mean: float
    temperature_std: float
    vibration_mean: float
    vibration_std: float
    vibration_rms: float
    vibration_spectral_energy: float
    pressure_mean: float
    pressure_std: float

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "FeatureVector":
        """외부 dict(JSON) → FeatureVector. 검증 실패 시 InvalidInputError."""
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as e:
            fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            raise InvalidInputError(f"invalid feature vector: {fields}", fields) from e

    def to_row(self) -> list[float]:
        """학습 순서(FEATURE_COLS)대로 정렬된 모델 입력 1행"""
        return [float(getattr(self, name)) for name in FEATURE_COLS]


def ensure_complete(vector: FeatureVector) -> None:
    """
    추론 직전 재검증.

    `model_construct` 등 검증을 우회해 만든 객체도 있으므로
    13개 feature 존재 여부·유한값·machine_id 정수 여부를 다시 확인합니다.
    """
    missing: list[str] = []
    invalid: list[str] = []
    for name in FEATURE_COLS:
        value = getattr(vector, name, None)
        if value is None:
            missing.append(name)
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            invalid.append(name)
            continue
        if not math.isfinite(number):
            invalid.append(name)
        elif name == "machine_id" and (number < 0 or not number.is_integer()):
            invalid.append(name)

    if missing:
        raise InvalidInputError(f"missing required fields: {missing}", missing)
    if invalid:
        raise InvalidInputError(f"non-finite or malformed fields: {invalid}", invalid)


def check_feature_schema(feature_names: list[str]) -> list[str]:
    """
    모델이 기대하는 feature 목록과 FEATURE_COLS 비교.
    불일치 항목 설명 리스트 반환 (빈 리스트 = 일치).
    """
    problems: list[str] = []
    if len(feature_names) != len(FEATURE_COLS):
        problems.append(f"feature count {len(feature_names)} != {len(FEATURE_COLS)}")
    for i, (got, want) in enumerate(zip(feature_names, FEATURE_COLS)):
        if got != want:
            problems.append(f"position {i}: {got!r} != {want!r}")
    unmapped = [c for c in FEATURE_COLS if c not in EXTERNAL_NAMES]
    if unmapped:
        problems.append(f"no external field mapping for {unmapped}")
    return problems


class PredictionResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    will_fail_soon: bool = Field(alias="willFailSoon")
    probability: float = Field(ge=0.0, le=1.0)
    score: float                      # calibration 전 raw margin
