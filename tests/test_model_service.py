"""Tests for FailureModel loading and PredictionService."""
import io
import math
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from app.core.constants import FEATURE_COLS
from app.core.exceptions import InvalidInputError, ModelLoadError, ScoringError
from app.schemas import FeatureVector
from app.service import model_service
from app.service.model_service import FailureModel, PredictionService

from conftest import SpyModel


# --- Loading ---

class TestFailureModelLoad:
    def test_loads_trained_artifact(self, failure_model):
        assert failure_model.feature_names == FEATURE_COLS

    def test_missing_path(self, tmp_path):
        with pytest.raises(ModelLoadError):
            FailureModel.load(str(tmp_path / "nope.txt"))

    def test_service_construction_fails_for_missing_path(self, tmp_path):
        with pytest.raises(ModelLoadError):
            PredictionService.from_uri(str(tmp_path / "nope.txt"))

    def test_corrupt_artifact(self, tmp_path):
        path = tmp_path / "corrupt.txt"
        path.write_text("this is not a model\n")
        with pytest.raises(ModelLoadError):
            FailureModel.load(str(path))

    def test_reordered_features_rejected(self, tmp_path, model_path):
        text = model_path.read_text()
        drifted = list(FEATURE_COLS)
        drifted[3], drifted[4] = drifted[4], drifted[3]
        text = text.replace("feature_names=" + " ".join(FEATURE_COLS), "feature_names=" + " ".join(drifted))
        path = tmp_path / "drifted.txt"
        path.write_text(text)
        with pytest.raises(ModelLoadError):
            FailureModel.load(str(path))

    def test_non_binary_objective_rejected(self, tmp_path, model_path):
        lines = [
            "objective=regression" if line.startswith("objective=") else line
            for line in model_path.read_text().splitlines()
        ]
        path = tmp_path / "regression.txt"
        path.write_text("\n".join(lines) + "\n")
        with pytest.raises(ModelLoadError):
            FailureModel.load(str(path))

    def test_loads_from_s3(self, monkeypatch, model_path):
        s3 = MagicMock()
        s3.get_object.return_value = {"Body": io.BytesIO(model_path.read_bytes())}
        monkeypatch.setattr(model_service, "_get_s3_client", lambda: s3)

        model = FailureModel.load("s3://pdm-model/models/latest/failure_model.txt")

        s3.get_object.assert_called_once_with(Bucket="pdm-model", Key="models/latest/failure_model.txt")
        assert model.feature_names == FEATURE_COLS

    def test_s3_client_error(self, monkeypatch):
        s3 = MagicMock()
        s3.get_object.side_effect = ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
        monkeypatch.setattr(model_service, "_get_s3_client", lambda: s3)
        with pytest.raises(ModelLoadError):
            FailureModel.load("s3://pdm-model/models/latest/failure_model.txt")

    def test_malformed_s3_uri(self):
        with pytest.raises(ModelLoadError):
            FailureModel.load("s3://bucket-only")


# --- Scoring ---

class TestPredictionService:
    def test_probability_in_range_and_decision_matches_margin(self, failure_model, make_vectors):
        service = PredictionService(failure_model)
        for v in make_vectors(20):
            result = service.predict(v)
            assert 0.0 <= result.probability <= 1.0
            assert math.isfinite(result.score)
            assert result.will_fail_soon == (result.score > 0)

    def test_predict_is_idempotent(self, failure_model, vector):
        service = PredictionService(failure_model)
        assert service.predict(vector) == service.predict(vector)

    def test_accepts_raw_mapping(self, failure_model, payload, vector):
        service = PredictionService(failure_model)
        assert service.predict(payload) == service.predict(vector)

    def test_uses_model_decision_not_probability(self, vector):
        # native boundary differs from 0.5: decision is passed through untouched
        service = PredictionService(SpyModel(probability=0.3, raw_score=0.2, decision=True))
        result = service.predict(vector)
        assert result.will_fail_soon is True
        assert result.probability == 0.3

    def test_missing_field_skips_model(self, vector):
        spy = SpyModel()
        service = PredictionService(spy)
        data = vector.model_dump()
        del data["vibration_rms"]
        with pytest.raises(InvalidInputError):
            service.predict(FeatureVector.model_construct(**data))
        assert spy.calls == []

    def test_missing_field_in_mapping_skips_model(self, payload):
        spy = SpyModel()
        service = PredictionService(spy)
        del payload["Temperature_last"]
        with pytest.raises(InvalidInputError):
            service.predict(payload)
        assert spy.calls == []

    def test_unsupported_input_type(self):
        with pytest.raises(InvalidInputError):
            PredictionService(SpyModel()).predict([1.0] * 13)

    def test_model_exception_becomes_scoring_error(self, vector):
        service = PredictionService(SpyModel(error=ValueError("unseen range")))
        with pytest.raises(ScoringError):
            service.predict(vector)

    @pytest.mark.parametrize("prob,raw", [(1.2, 0.5), (-0.1, 0.5), (math.nan, 0.5), (0.5, math.inf)])
    def test_out_of_range_output_becomes_scoring_error(self, vector, prob, raw):
        service = PredictionService(SpyModel(probability=prob, raw_score=raw))
        with pytest.raises(ScoringError):
            service.predict(vector)

    def test_incompatible_model_rejected(self):
        spy = SpyModel()
        spy.feature_names = FEATURE_COLS[::-1]
        with pytest.raises(ModelLoadError):
            PredictionService(spy)

    def test_concurrent_predictions_match_sequential(self, failure_model, make_vectors):
        service = PredictionService(failure_model)
        vectors = make_vectors(64, seed=7)
        expected = [service.predict(v) for v in vectors]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(service.predict, vectors))

        assert results == expected

    def test_swap_model(self, vector):
        service = PredictionService(SpyModel(probability=0.1))
        service.swap_model(SpyModel(probability=0.9, raw_score=2.0, decision=True))
        assert service.predict(vector).probability == 0.9


# --- Process Singleton ---

class TestServiceSingleton:
    def test_init_and_reset(self, clean_service, model_path):
        assert not model_service.is_ready()
        service = model_service.init_service(str(model_path))
        assert model_service.is_ready()
        assert model_service.get_service() is service

    def test_init_failure_leaves_no_service(self, clean_service, tmp_path):
        with pytest.raises(ModelLoadError):
            model_service.init_service(str(tmp_path / "missing.txt"))
        assert not model_service.is_ready()

    def test_failed_reload_keeps_current_model(self, clean_service, model_path, tmp_path):
        service = model_service.init_service(str(model_path))
        with pytest.raises(ModelLoadError):
            model_service.reload_service(str(tmp_path / "missing.txt"))
        assert model_service.get_service() is service
        assert service.model_source == str(model_path)
