from dataclasses import asdict
from typing import Literal
import os
import neptune
from neptune.utils import stringify_unsupported
from tabnn.models.network.config import NeuralNetworkConfig

Context = Literal["train", "val", "meta"]


class McLogger:
    """
    Experiment tracker backed by a Neptune run. Credentials come from NEPTUNE_PROJECT / NEPTUNE_API_TOKEN.
    Batch values under the train context are written every `log_every_n_steps` steps; val/meta values always.
    """

    def __init__(self, config: NeuralNetworkConfig):
        neptune_run = neptune.init_run(
            project=os.getenv("NEPTUNE_PROJECT"),
            api_token=os.getenv("NEPTUNE_API_TOKEN"),
            tags=[config.task],
        )
        neptune_run["config"] = stringify_unsupported(asdict(config))

        self.neptune_run: neptune.Run = neptune_run
        self.config: NeuralNetworkConfig = config
        self.global_step: int = 0
        self._context: Context = "train"

    def set_context(self, context: Context):
        self._context = context

    def should_log(self) -> bool:
        return self.global_step % self.config.log_every_n_steps == 0

    def log(self, name: str, value: float):
        if self._context == "train" and not self.should_log():
            return

        self._write_log(f"{self._context}/{name}", value)

    def log_epoch(self, epoch: int, val_loss: float | None, val_metric: float | None):
        metric_name = "accuracy" if self.config.task == "classification" else "mse"

        if val_loss is not None:
            self.set_context("val")
            self.log("loss", val_loss)
            self.log(metric_name, val_metric)

        self.set_context("meta")
        self.log("epoch", epoch)
        self.set_context("train")

    def _write_log(self, key: str, value: float):
        self.neptune_run[key].append(value, step=self.global_step)

    def step(self):
        self.global_step += 1

    def stop(self):
        self.neptune_run.stop()
