"""Pytest fixtures for the inference service tests."""
import numpy as np
import pandas as pd
import pytest

from app.core.constants import FEATURE_COLS, LABEL_COL
from app.schemas import FeatureVector
from app.service import model_service, train_service
from app.service.model_service import FailureModel, ScoreResult


# --- Sample Inputs ---

@pytest.fixture
def payload() -> dict:
    """Inbound JSON body using external field names."""
    return {
        "MachineID": 1,
        "Timestamp": "2025-03-01 10:15:00",
        "Temperature_last": 92.0,
        "Vibration_last": 0.72,
        "Pressure_last": 6.5,
        "RunTimeHours_last": 2500.0,
        "Temperature_mean": 88.0,
        "Temperature_std": 1.8,
        "Vibration_mean": 0.7,
        "Vibration_std": 0.09,
        "Vibration_rms": 0.71,
        "Vibration_spec_energy": 0.01,
        "Pressure_mean": 6.3,
        "Pressure_std": 0.4,
    }


@pytest.fixture
def vector(payload) -> FeatureVector:
    return FeatureVector.from_payload(payload)


@pytest.fixture
def make_vectors():
    """Factory fixture producing distinct valid vectors."""
    def _make(n: int, seed: int = 1) -> list[FeatureVector]:
        rng = np.random.default_rng(seed)
        vectors = []
        for i in range(n):
            values = rng.uniform(0.1, 100.0, len(FEATURE_COLS) - 1)
            fields = {name: float(v) for name, v in zip(FEATURE_COLS[1:], values)}
            vectors.append(FeatureVector(machine_id=i, timestamp=f"t{i}", **fields))
        return vectors
    return _make


# --- Spy Models ---

class SpyModel:
    """Records calls; returns a fixed score."""

    def __init__(self, probability=0.5, raw_score=0.0, decision=False, error=None):
        self.feature_names = list(FEATURE_COLS)
        self.source = "spy"
        self.calls = []
        self._out = ScoreResult(probability, raw_score, decision)
        self._error = error

    def score(self, vector):
        self.calls.append(vector)
        if self._error is not None:
            raise self._error
        return self._out


@pytest.fixture
def spy_model() -> SpyModel:
    return SpyModel(probability=0.82, raw_score=1.51629, decision=True)


# --- Real LightGBM Artifact ---

@pytest.fixture(scope="session")
def training_frame() -> pd.DataFrame:
    rng = np.random.default_rng(0)
    n = 800
    df = pd.DataFrame({
        "machine_id": rng.integers(1, 6, n).astype(float),
        "temperature_last": rng.normal(80, 10, n),
        "vibration_last": rng.uniform(0.1, 1.1, n),
        "pressure_last": rng.normal(6, 1, n),
        "runtime_hours_last": rng.integers(1, 3000, n).astype(float),
        "temperature_mean": rng.normal(78, 5, n),
        "temperature_std": rng.uniform(0, 5, n),
        "vibration_mean": rng.uniform(0.3, 0.8, n),
        "vibration_std": rng.uniform(0, 0.1, n),
        "vibration_rms": rng.uniform(0, 1, n),
        "vibration_spectral_energy": rng.uniform(0, 0.02, n),
        "pressure_mean": rng.normal(6, 0.5, n),
        "pressure_std": rng.uniform(0, 0.5, n),
    })
    df[LABEL_COL] = ((df["temperature_last"] > 85) & (df["vibration_last"] > 0.5)).astype(int)
    return df


@pytest.fixture(scope="session")
def model_path(tmp_path_factory, training_frame):
    booster, _ = train_service.train_model(training_frame.copy())
    return train_service.save_model(booster, tmp_path_factory.mktemp("model") / "failure_model.txt")


@pytest.fixture(scope="session")
def failure_model(model_path) -> FailureModel:
    return FailureModel.load(str(model_path))


@pytest.fixture
def clean_service():
    """Reset the process-level service singleton around a test."""
    model_service.reset_service()
    yield
    model_service.reset_service()
