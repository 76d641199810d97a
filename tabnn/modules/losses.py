from typing import Callable
from torch import nn
import torch.nn.functional as f
import torch
from tabnn.errors import ConfigError

EPS = 1e-7


class CategoricalCrossEntropy(nn.Module):
    """
    Cross-entropy between one-hot targets and predicted probabilities (outputs of a softmax layer).
    Probabilities are clamped away from 0 before the log.
    """

    def __init__(self, reduction: str = "mean"):
        super().__init__()
        self.reduction = reduction

    def forward(self, probs: torch.Tensor, targets: torch.Tensor) -> torch.Tensor:
        loss = -(targets * torch.log(probs.clamp_min(EPS))).sum(dim=-1)

        return loss.mean() if self.reduction == "mean" else loss.sum()


def binary_cross_entropy(probs: torch.Tensor, targets: torch.Tensor) -> torch.Tensor:
    return f.binary_cross_entropy(probs.clamp(EPS, 1 - EPS), targets)


LOSSES: dict[str, Callable[[], Callable[[torch.Tensor, torch.Tensor], torch.Tensor]]] = {
    "categorical_crossentropy": CategoricalCrossEntropy,
    "binary_crossentropy": lambda: binary_cross_entropy,
    "mean_squared_error": nn.MSELoss,
    "mean_absolute_error": nn.L1Loss,
}


def build_loss(name: str) -> Callable[[torch.Tensor, torch.Tensor], torch.Tensor]:
    key = name.lower()
    if key not in LOSSES:
        raise ConfigError(f"Unknown loss '{name}'; expected one of {sorted(LOSSES)}")

    return LOSSES[key]()
