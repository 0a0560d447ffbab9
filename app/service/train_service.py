"""train_service.py
고장 예측 모델 학습 · 저장 · S3 업로드 서비스
-------------------------------------------------
· 입력 데이터        :  feature engineering 완료 CSV (외부 컬럼명, constants.FIELD_MAP)
· 공통 상수          :  app.core.constants
· 런타임 설정        :  app.core.config.settings

추론 서비스가 소비하는 LightGBM 텍스트 아티팩트를 만드는 외부 파이프라인입니다.
feature 순서는 constants.FEATURE_COLS 로 고정되며 바뀌면 추론 측도 함께 바뀌어야 합니다.

Usage
-----
from app.service import train_service
result = train_service.train_and_save("features_engineered.csv", "models/failure_model.txt")
print(result)
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import lightgbm as lgb
import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score, f1_score, roc_auc_score
from sklearn.model_selection import train_test_split

from app.core import constants as C
from app.core.logging_config import get_logger
from app.service.model_service import _get_s3_client, split_s3_uri

logger = get_logger("pdm.train")

_FEATURE_COLS = C.FEATURE_COLS
_TARGET_COL = C.LABEL_COL
_VERSION_TEMPLATE = "models/{:%Y/%m/%d/%H%M%S}"


# ───────────────────────────────────────────────────────────────────────────────
# 데이터 적재
# ───────────────────────────────────────────────────────────────────────────────
def load_training_frame(csv_path: str | Path) -> pd.DataFrame:
    """CSV → 내부 컬럼명 DataFrame (feature 결측치는 컬럼 평균으로 보정)"""
    df = pd.read_csv(csv_path)
    df = df.rename(columns=C.FIELD_MAP)

    missing = [c for c in _FEATURE_COLS + [_TARGET_COL] if c not in df.columns]
    if missing:
        raise ValueError(f"training data missing columns: {missing}")

    df = df[_FEATURE_COLS + [_TARGET_COL]].copy()
    df[_FEATURE_COLS] = df[_FEATURE_COLS].apply(pd.to_numeric, errors="coerce")
    df[_FEATURE_COLS] = df[_FEATURE_COLS].fillna(df[_FEATURE_COLS].mean())

    label = df[_TARGET_COL]
    if label.dtype == object:
        label = label.astype(str).str.strip().str.lower().map({"true": 1, "false": 0, "1": 1, "0": 0})
    df[_TARGET_COL] = label
    df = df.dropna(subset=[_TARGET_COL])
    df[_TARGET_COL] = df[_TARGET_COL].astype(int)

    logger.info(f"학습 데이터 로드 → shape={df.shape}, positive={int(df[_TARGET_COL].sum())}")
    return df


# ───────────────────────────────────────────────────────────────────────────────
# 학습 로직
# ───────────────────────────────────────────────────────────────────────────────
def _stratify(y: pd.Series) -> Optional[pd.Series]:
    counts = y.value_counts()
    return y if len(counts) > 1 and counts.min() >= 2 else None


def train_model(df: pd.DataFrame) -> Tuple[lgb.Booster, dict]:
    X = df[_FEATURE_COLS]
    y = df[_TARGET_COL]

    X_temp, X_test, y_temp, y_test = train_test_split(
        X, y, test_size=C.TEST_RATIO, random_state=C.RANDOM_STATE, stratify=_stratify(y)
    )
    X_train, X_valid, y_train, y_valid = train_test_split(
        X_temp, y_temp, test_size=C.VALID_RATIO, random_state=C.RANDOM_STATE, stratify=_stratify(y_temp)
    )

    model = lgb.LGBMClassifier(
        n_estimators=300,
        learning_rate=0.05,
        num_leaves=31,
        objective="binary",
        random_state=C.RANDOM_STATE,
        verbosity=-1,
    )

    logger.info(f"LightGBM fit 시작 (train={len(X_train)}, valid={len(X_valid)})")
    model.fit(
        X_train,
        y_train,
        eval_set=[(X_valid, y_valid)],
        eval_names=["valid"],
        eval_metric="binary_logloss",
        callbacks=[
            lgb.log_evaluation(period=0),
            lgb.early_stopping(30, verbose=False),
        ],
    )

    proba = model.predict_proba(X_test)[:, 1]
    pred = (proba > 0.5).astype(int)
    metrics = {
        "accuracy": float(accuracy_score(y_test, pred)),
        "f1": float(f1_score(y_test, pred, zero_division=0)),
        # 테스트셋이 한 클래스뿐이면 AUC 정의 불가
        "auc": float(roc_auc_score(y_test, proba)) if y_test.nunique() > 1 else None,
        "rows": int(len(df)),
        "best_iteration": int(model.best_iteration_ or model.n_estimators),
    }
    logger.info(
        "Eval | Accuracy=%.4f F1=%.4f AUC=%s",
        metrics["accuracy"], metrics["f1"],
        "n/a" if metrics["auc"] is None else f"{metrics['auc']:.4f}",
    )
    return model.booster_, metrics


# ───────────────────────────────────────────────────────────────────────────────
# 모델 저장 & 버전 관리
# ───────────────────────────────────────────────────────────────────────────────
def save_model(booster: lgb.Booster, output: str | Path) -> Path:
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    booster.save_model(str(path))
    logger.info(f"모델 저장 → {path}")
    return path


def upload_model(booster: lgb.Booster, metrics: dict, target_uri: str) -> str:
    """
    버전 디렉터리에 모델·메트릭을 올린 뒤 target_uri(서빙이 읽는 키)로 승격.
    반환값: 버전 디렉터리 key
    """
    bucket, latest_key = split_s3_uri(target_uri)
    filename = latest_key.rsplit("/", 1)[-1]
    now = datetime.now(timezone.utc)
    version_dir = _VERSION_TEMPLATE.format(now)

    model_body = booster.model_to_string().encode("utf-8")
    metric_body = json.dumps(metrics).encode("utf-8")

    s3 = _get_s3_client()
    # 버전 히스토리 저장
    s3.put_object(Bucket=bucket, Key=f"{version_dir}/{filename}", Body=model_body)
    s3.put_object(Bucket=bucket, Key=f"{version_dir}/metrics.json", Body=metric_body)
    # 승격
    s3.put_object(Bucket=bucket, Key=latest_key, Body=model_body)
    logger.info(f"S3 업로드 완료 | version_dir={version_dir} → s3://{bucket}/{latest_key}")
    return version_dir


# ───────────────────────────────────────────────────────────────────────────────
# Public 엔트리포인트
# ───────────────────────────────────────────────────────────────────────────────
def train_and_save(
    csv_path: str | Path,
    output: str | Path,
    upload_uri: str | None = None,   # s3://bucket/key
) -> dict:
    try:
        df = load_training_frame(csv_path)
    except (OSError, ValueError, pd.errors.ParserError) as e:
        logger.error(f"학습 데이터 로드 실패: {e}")
        return {"status": "error", "reason": "load_failed", "msg": str(e)}

    if len(df) < C.MIN_TRAIN_ROWS or df[_TARGET_COL].nunique() < 2:
        logger.warning(f"데이터 부족 (rows={len(df)}, classes={df[_TARGET_COL].nunique()}) → 학습 Skip")
        return {"status": "skip", "reason": "too_few_rows", "rows": len(df)}

    try:
        booster, metrics = train_model(df)
    except Exception as e:
        logger.exception(f"Train failed: {e}")
        return {"status": "error", "reason": "train_failed", "msg": str(e)}

    path = save_model(booster, output)
    result = {
        "status": "ok",
        "model_path": str(path),
        "metrics": metrics,
        "feature_importance": feature_importance(booster),
    }

    if upload_uri:
        result["version_dir"] = upload_model(booster, metrics, upload_uri)
        result["promoted_to"] = upload_uri

    return result


def feature_importance(booster: lgb.Booster) -> dict[str, float]:
    """gain 기준 feature 중요도 (리포트용)"""
    gains = booster.feature_importance(importance_type="gain")
    total = float(np.sum(gains)) or 1.0
    return {name: float(g) / total for name, g in zip(booster.feature_name(), gains)}
