"""
Alert Service
=============

• 예측 결과 + 임계치 → 알림 여부 결정 (순수 함수, 부수효과 없음)
• 알림 본문은 입력(FeatureVector, PredictionResult)만으로 결정되는 고정 템플릿
• 전송은 notification_service 담당
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.core.constants import ALERT_FIELD_LABELS, ALERT_SUBJECT
from app.schemas import FeatureVector, PredictionResult


@dataclass(frozen=True)
class AlertMessage:
    subject: str
    body: str


def should_alert(probability: float, threshold: float) -> bool:
    """
    probability > threshold 일 때만 True (같으면 발송하지 않음).
    [0,1] 밖의 임계치는 그대로 비교 → 항상 발송/항상 미발송, NaN 은 미발송.
    """
    return probability > threshold


def format_alert_body(vector: FeatureVector, result: PredictionResult) -> str:
    prob = f"{result.probability:.2%}"
    lines = [f"🚨 Alert: Machine failure probability is {prob}!", ""]
    for entry in ALERT_FIELD_LABELS:
        if entry is None:
            lines.append("")
            continue
        field, label = entry
        lines.append(f"{label}: {getattr(vector, field)}")

    verdict = "Likely" if result.will_fail_soon else "Unlikely"
    lines += [
        "",
        f"Prediction: {verdict} to fail within 2 hours",
        f"Probability: {prob}",
        f"Raw Score: {result.score:.4f}",
    ]
    return "\n".join(lines) + "\n"


def evaluate(
    vector: FeatureVector,
    result: PredictionResult,
    threshold: float,
) -> Optional[AlertMessage]:
    if not should_alert(result.probability, threshold):
        return None
    return AlertMessage(subject=ALERT_SUBJECT, body=format_alert_body(vector, result))
