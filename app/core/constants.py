"""
app.core.constants
────────────────────────────────────────────
모델 학습·추론·알림에 공통으로 쓰이는 하드코딩 상수 모음
"""

# ── 모델 입력 Feature 목록 (학습·추론 공통, 순서 고정) ──
FEATURE_COLS: list[str] = [
    # 식별자 (학습 시 feature 로 사용됨)
    "machine_id",
    # 최근 샘플
    "temperature_last", "vibration_last", "pressure_last", "runtime_hours_last",
    # rolling 통계
    "temperature_mean",   "temperature_std",
    "vibration_mean",     "vibration_std",
    "vibration_rms",      "vibration_spectral_energy",
    "pressure_mean",      "pressure_std",
]

# ── 외부(JSON/CSV) 컬럼명 → 내부 필드명 매핑 ──
FIELD_MAP: dict[str, str] = {
    "MachineID":             "machine_id",
    "Timestamp":             "timestamp",
    "Temperature_last":      "temperature_last",
    "Vibration_last":        "vibration_last",
    "Pressure_last":         "pressure_last",
    "RunTimeHours_last":     "runtime_hours_last",
    "Temperature_mean":      "temperature_mean",
    "Temperature_std":       "temperature_std",
    "Vibration_mean":        "vibration_mean",
    "Vibration_std":         "vibration_std",
    "Vibration_rms":         "vibration_rms",
    "Vibration_spec_energy": "vibration_spectral_energy",
    "Pressure_mean":         "pressure_mean",
    "Pressure_std":          "pressure_std",
}
EXTERNAL_NAMES: dict[str, str] = {v: k for k, v in FIELD_MAP.items()}

# ── 학습 라벨 ──
LABEL_COL: str = "will_fail_within_2h"

# ── 알림 ──
ALERT_SUBJECT: str = "Critical Machine Alert"
DEFAULT_FAILURE_THRESHOLD: float = 0.75

# 알림 본문 라벨 (출력 순서 = 본문 순서, None = 빈 줄)
ALERT_FIELD_LABELS: list[tuple[str, str] | None] = [
    ("machine_id",                "Machine ID"),
    ("timestamp",                 "Timestamp"),
    ("temperature_last",          "Temperature (last)"),
    ("vibration_last",            "Vibration (last)"),
    ("pressure_last",             "Pressure (last)"),
    ("runtime_hours_last",        "Run Time (hours, last)"),
    None,
    ("temperature_mean",          "Temperature (mean)"),
    ("temperature_std",           "Temperature (std)"),
    ("vibration_mean",            "Vibration (mean)"),
    ("vibration_std",             "Vibration (std)"),
    ("vibration_rms",             "Vibration (rms)"),
    ("vibration_spectral_energy", "Vibration (spec energy)"),
    ("pressure_mean",             "Pressure (mean)"),
    ("pressure_std",              "Pressure (std)"),
]

# ── 학습 전용 ──
MIN_TRAIN_ROWS: int = 50        # 이보다 적으면 학습 Skip
TEST_RATIO: float = 0.20
VALID_RATIO: float = 0.25       # train 중 validation 비율
RANDOM_STATE: int = 0
