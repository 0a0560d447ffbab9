"""
app.core.metrics
----------------
도메인 Prometheus 지표 (HTTP 지표는 prometheus_fastapi_instrumentator 가 담당)
"""
from prometheus_client import Counter

PREDICTIONS = Counter(
    "pdm_predictions_total", "Prediction requests by outcome", ["outcome"]
)   # ok / invalid_input / scoring_error
ALERTS = Counter(
    "pdm_alerts_total", "Failure alerts by dispatch status", ["status"]
)   # sent / failed
