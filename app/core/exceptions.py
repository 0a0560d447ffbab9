"""
app.core.exceptions
-------------------
추론·알림 파이프라인 공통 예외.

• ModelLoadError    : 아티팩트 없음/손상/스키마 불일치 → 기동 실패
• InvalidInputError : 요청 필드 누락·비유한값 → 요청 단위 거절 (422)
• ScoringError      : 모델 추론 중 예외 → 요청 단위 서비스 오류 (500)
• DispatchError     : 알림 전송 실패 → 예측 응답으로 전파되지 않음
"""
from __future__ import annotations

from typing import Iterable


class PredictiveMaintenanceError(Exception):
    """서비스 예외 베이스"""


class ModelLoadError(PredictiveMaintenanceError):
    pass


class InvalidInputError(PredictiveMaintenanceError):
    def __init__(self, message: str, fields: Iterable[str] = ()):
        super().__init__(message)
        self.fields: list[str] = list(fields)


class ScoringError(PredictiveMaintenanceError):
    pass


class DispatchError(PredictiveMaintenanceError):
    pass
