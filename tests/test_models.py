"""Tests for model factory."""
import pytest
from sklearn.neural_network import MLPClassifier

from dstat_ml.models import MODEL_ARCHITECTURES, create_model, get_model_name


class TestCreateModel:
    """Test suite for create_model."""

    @pytest.mark.parametrize(
        "model_type, layers",
        [("nn_small", (8,)), ("nn_medium", (16, 8)), ("nn_deep", (32, 16, 8))],
    )
    def test_architectures(self, model_type, layers):
        model = create_model(model_type)

        assert isinstance(model, MLPClassifier)
        assert model.hidden_layer_sizes == layers

    def test_three_networks(self):
        assert len(MODEL_ARCHITECTURES) == 3

    def test_params_override(self):
        model = create_model(
            "nn_small",
            params={"alpha": 0.01, "max_iter": 50, "hidden_layer_sizes": [4, 2]},
            random_state=3,
        )

        assert model.alpha == 0.01
        assert model.max_iter == 50
        assert model.hidden_layer_sizes == (4, 2)
        assert model.random_state == 3

    def test_unknown_model(self):
        with pytest.raises(ValueError, match="Unknown model type"):
            create_model("xgb")

    def test_model_names(self):
        assert get_model_name("nn_deep") == "Three Hidden Layer Network"
        assert get_model_name("other") == "other"
