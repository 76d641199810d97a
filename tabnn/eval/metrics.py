import numpy as np
from sklearn.metrics import accuracy_score, mean_squared_error


def classification_accuracy(probs: np.ndarray, targets: np.ndarray) -> float:
    """
    Share of rows whose highest-probability unit matches the one-hot target (single categorical output).
    """
    if len(targets) == 0:
        return 0.0

    return float(accuracy_score(targets.argmax(axis=1), probs.argmax(axis=1)))


def regression_error(preds: np.ndarray, targets: np.ndarray) -> float:
    """
    Mean squared error on the normalized scale.
    """
    if len(targets) == 0:
        return 0.0

    return float(mean_squared_error(targets, preds))
