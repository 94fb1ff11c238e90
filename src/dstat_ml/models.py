"""
Model definitions for discharge status prediction.

Three small feed-forward neural networks of increasing depth:
- Single hidden layer network
- Two hidden layer network
- Three hidden layer network
"""

import logging
from typing import Any, Dict, Optional

from sklearn.neural_network import MLPClassifier

logger = logging.getLogger(__name__)


MODEL_ARCHITECTURES = {
    "nn_small": (8,),
    "nn_medium": (16, 8),
    "nn_deep": (32, 16, 8),
}

MODEL_NAMES = {
    "nn_small": "Single Hidden Layer Network",
    "nn_medium": "Two Hidden Layer Network",
    "nn_deep": "Three Hidden Layer Network",
    "baseline": "Baseline (Majority Class)",
}


def create_mlp_classifier(
    hidden_layer_sizes: tuple,
    params: Dict[str, Any],
    random_state: int = 42,
) -> MLPClassifier:
    """
    Create a feed-forward neural network classifier.

    Parameters
    ----------
    hidden_layer_sizes : tuple
        Number of units in each hidden layer
    params : dict
        Hyperparameters (activation, alpha, learning_rate_init, max_iter,
                         early_stopping)
    random_state : int
        Random state

    Returns
    -------
    MLPClassifier
        Configured model
    """
    return MLPClassifier(
        hidden_layer_sizes=hidden_layer_sizes,
        activation=params.get("activation", "relu"),
        solver=params.get("solver", "adam"),
        alpha=params.get("alpha", 1e-4),
        learning_rate_init=params.get("learning_rate_init", 1e-3),
        max_iter=params.get("max_iter", 500),
        early_stopping=params.get("early_stopping", False),
        random_state=random_state,
    )


def create_model(
    model_type: str,
    params: Optional[Dict[str, Any]] = None,
    random_state: int = 42,
) -> MLPClassifier:
    """
    Factory function to create any model by type.

    Parameters
    ----------
    model_type : str
        Model type code ('nn_small', 'nn_medium', 'nn_deep')
    params : dict, optional
        Hyperparameters; 'hidden_layer_sizes' overrides the architecture
    random_state : int
        Random state

    Returns
    -------
    MLPClassifier
        Configured estimator
    """
    if model_type not in MODEL_ARCHITECTURES:
        raise ValueError(
            f"Unknown model type: {model_type}. "
            f"Available: {list(MODEL_ARCHITECTURES.keys())}"
        )

    params = params or {}
    hidden_layer_sizes = tuple(
        params.get("hidden_layer_sizes", MODEL_ARCHITECTURES[model_type])
    )

    logger.debug(f"Creating {get_model_name(model_type)} with layers {hidden_layer_sizes}")

    return create_mlp_classifier(hidden_layer_sizes, params, random_state=random_state)


def get_model_name(model_type: str) -> str:
    """Get human-readable model name."""
    return MODEL_NAMES.get(model_type, model_type)
