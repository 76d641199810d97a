import torch.nn as nn
import torch
from tabnn.errors import ConfigError


class StableMax(nn.Module):
    """
    StableMax is an alternative to Softmax that helps mitigate numerical
    instabilities. It applies an elementwise transform s(x) and normalizes
    over the specified dimension to produce probabilities that sum to 1.

    s(x) = (x + 1) if x >= 0, or 1 / (1 - x) if x < 0.
    logits are clamped to [clamp_min, clamp_max] to avoid extreme values.
    """

    def __init__(self, dim: int = -1, clamp_min: float = -10.0, clamp_max: float = 10.0):
        super().__init__()
        self.dim = dim
        self.clamp_min = clamp_min
        self.clamp_max = clamp_max

    def forward(self, logits: torch.Tensor) -> torch.Tensor:
        logits = torch.clamp(logits, min=self.clamp_min, max=self.clamp_max)
        s_logits = torch.where(logits >= 0, logits + 1, 1 / (1 - logits))
        s_sum = s_logits.sum(dim=self.dim, keepdim=True)

        return s_logits / (s_sum + 1e-9)


ACTIVATIONS = {
    "relu": nn.ReLU,
    "sigmoid": nn.Sigmoid,
    "tanh": nn.Tanh,
    "elu": nn.ELU,
    "selu": nn.SELU,
    "leaky_relu": nn.LeakyReLU,
    "softplus": nn.Softplus,
    "linear": nn.Identity,
    "softmax": lambda: nn.Softmax(dim=-1),
    "stablemax": StableMax,
}

# Activations whose outputs form a distribution over the last dimension.
DISTRIBUTION_ACTIVATIONS = ("softmax", "stablemax")


def build_activation(name: str | None) -> nn.Module:
    if name is None:
        return nn.Identity()

    key = name.lower()
    if key not in ACTIVATIONS:
        raise ConfigError(f"Unknown activation '{name}'; expected one of {sorted(ACTIVATIONS)}")

    return ACTIVATIONS[key]()
