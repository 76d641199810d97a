from dataclasses import dataclass, field
from typing import Callable
import math
import signal
import threading
import numpy as np
import torch
from torch.optim import Optimizer
from torch.utils.data import DataLoader, Subset
from schedulefree import AdamWScheduleFree
from sklearn.model_selection import train_test_split
from tqdm.rich import tqdm
from tabnn.commons.console import console
from tabnn.commons.logger import McLogger
from tabnn.data.encode import TrainingTensors
from tabnn.errors import ConfigError
from tabnn.eval.metrics import classification_accuracy, regression_error
from tabnn.models.network.config import NeuralNetworkConfig, SCHEDULE_FREE_OPTIMIZERS
from tabnn.models.network.network_dataset import TabularDataset
from tabnn.models.network.network_model import SequentialNetwork
from tabnn.modules.losses import build_loss


@dataclass(frozen=True)
class EpochLogs:
    epoch: int
    loss: float
    val_loss: float | None = None
    val_metric: float | None = None  # Accuracy for classification, normalized MSE for regression


@dataclass
class TrainingHistory:
    epochs: list[EpochLogs] = field(default_factory=list)
    stopped_early: bool = False

    @property
    def final_loss(self) -> float | None:
        return self.epochs[-1].loss if self.epochs else None


WhileTraining = Callable[[int, EpochLogs], None]


class ModelTrainer:
    def __init__(self, config: NeuralNetworkConfig):
        self.config = config

        self.should_stop: bool = False
        self.mclogger: McLogger | None = McLogger(config) if config.enable_logging else None
        self.device: torch.device = torch.device("cuda" if torch.cuda.is_available() else "cpu")

    def _signal_handler(self, _signum, _frame):
        console.print("Received graceful shutdown signal...", style="warn_text")
        self.should_stop = True

    def _install_signal_handlers(self) -> dict:
        # Signal handlers can only be installed from the main thread.
        if threading.current_thread() is not threading.main_thread():
            return {}

        previous = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
        for sig in previous:
            signal.signal(sig, self._signal_handler)

        return previous

    def _prepare_data(self, tensors: TrainingTensors) -> tuple[DataLoader, DataLoader | None]:
        """
        Split rows into train/validation subsets and wrap them in dataloaders.
        """
        config = self.config
        dataset = TabularDataset(tensors)

        if config.validation_split > 0 and len(dataset) > 1:
            n_val = math.ceil(config.validation_split * len(dataset))
            if n_val >= len(dataset):
                raise ConfigError(
                    f"validation_split={config.validation_split} leaves no training rows out of {len(dataset)}"
                )

            train_idx, val_idx = train_test_split(
                list(range(len(dataset))),
                test_size=config.validation_split,
                shuffle=config.shuffle,
                random_state=config.random_state,
            )
            train_dataset, val_dataset = Subset(dataset, train_idx), Subset(dataset, val_idx)
        else:
            train_dataset, val_dataset = dataset, None

        generator = torch.Generator().manual_seed(config.random_state)

        train_dataloader = DataLoader(
            train_dataset,
            batch_size=config.batch_size,
            shuffle=config.shuffle,
            num_workers=config.num_workers,
            generator=generator,
        )
        val_dataloader = (
            DataLoader(val_dataset, batch_size=config.batch_size, shuffle=False, num_workers=config.num_workers)
            if val_dataset is not None
            else None
        )

        if config.debug:
            console.print(f"--- Data Preparation ---", style="info_title")
            console.print(
                f"Split data: {len(train_dataset)} train, {len(val_dataset) if val_dataset else 0} val samples.",
                style="info_text",
            )
            console.print(f"------\n", style="info_title")

        return train_dataloader, val_dataloader

    def _prepare_optimizer(self, model: SequentialNetwork) -> Optimizer:
        """Create the optimizer named in the config."""
        config = self.config

        if config.optimizer == "sgd":
            return torch.optim.SGD(model.parameters(), lr=config.learning_rate, weight_decay=config.weight_decay)

        if config.optimizer == "adam":
            return torch.optim.Adam(
                model.parameters(), lr=config.learning_rate, betas=config.betas, weight_decay=config.weight_decay
            )

        if config.optimizer == "adamw":
            return torch.optim.AdamW(
                model.parameters(), lr=config.learning_rate, betas=config.betas, weight_decay=config.weight_decay
            )

        return AdamWScheduleFree(
            model.parameters(), lr=config.learning_rate, betas=config.betas, weight_decay=config.weight_decay
        )

    def _train_epoch(self, model: SequentialNetwork, optimizer: Optimizer, loss_fn, epoch: int, dataloader: DataLoader) -> float:
        """Train for one epoch and return the mean batch loss."""
        config = self.config
        losses = []

        p_bar = tqdm(dataloader, desc=f"Training Epoch {epoch}", disable=not config.debug, leave=False)
        for x, y in p_bar:
            if self.should_stop:
                break

            # --- Move to device ---
            x, y = x.to(self.device), y.to(self.device)

            # --- Forward pass ---
            optimizer.zero_grad()
            loss = loss_fn(model(x), y)

            # --- Backward pass and optimizer step ---
            loss.backward()

            if config.gradient_clip_val is not None:
                torch.nn.utils.clip_grad_norm_(model.parameters(), config.gradient_clip_val)

            optimizer.step()

            losses.append(loss.item())
            p_bar.set_postfix(loss=f"{loss.item():.4f}")

            if self.mclogger:
                self.mclogger.log("loss", loss.item())
                self.mclogger.step()

        return float(np.mean(losses)) if losses else float("nan")

    def _validate_model(self, model: SequentialNetwork, loss_fn, dataloader: DataLoader) -> tuple[float, float]:
        all_losses = []
        all_preds = []
        all_targets = []

        with torch.no_grad():
            for x, y in dataloader:
                x, y = x.to(self.device), y.to(self.device)
                preds = model(x)

                all_losses.append(loss_fn(preds, y).item())
                all_preds.append(preds.cpu().numpy())
                all_targets.append(y.cpu().numpy())

        # === Calculate metrics ===

        avg_loss = float(np.mean(all_losses))
        preds, targets = np.concatenate(all_preds), np.concatenate(all_targets)

        if self.config.task == "classification":
            metric = classification_accuracy(preds, targets)
        else:
            metric = regression_error(preds, targets)

        return avg_loss, metric

    def train_model(
        self, model: SequentialNetwork, tensors: TrainingTensors, while_training: WhileTraining | None = None
    ) -> TrainingHistory:
        config = self.config

        if config.debug:
            console.print(f"\n--- Starting Model Training ---", style="info_title")
            console.print(f"CUDA Availability: {torch.cuda.is_available()}", style="info_text")
            console.print(f"------\n", style="info_title")

        # --- Prepare data, model and optimizer ---
        train_dataloader, val_dataloader = self._prepare_data(tensors)

        model.to(self.device)
        optimizer = self._prepare_optimizer(model)
        loss_fn = build_loss(config.loss)
        schedule_free = config.optimizer in SCHEDULE_FREE_OPTIMIZERS

        if config.debug:
            console.print(f"Optimizer: {optimizer.__class__.__name__}", style="info_text")
            console.print(f"Loss: {config.loss}", style="info_text")

        history = TrainingHistory()
        previous_handlers = self._install_signal_handlers()

        try:
            # --- Training loop ---
            for epoch in range(1, config.epochs + 1):
                model.train()
                if schedule_free:
                    optimizer.train()

                train_loss = self._train_epoch(model, optimizer, loss_fn, epoch, train_dataloader)

                if self.should_stop:
                    console.print(f"Gracefully stopped at epoch {epoch}", style="warn_text")
                    history.stopped_early = True
                    break

                # --- Set model and optimizer to eval mode ---
                model.eval()
                if schedule_free:
                    optimizer.eval()

                val_loss, val_metric = None, None
                if val_dataloader is not None:
                    val_loss, val_metric = self._validate_model(model, loss_fn, val_dataloader)

                logs = EpochLogs(epoch=epoch, loss=train_loss, val_loss=val_loss, val_metric=val_metric)
                history.epochs.append(logs)

                # --- Log epoch metrics ---
                if self.mclogger:
                    self.mclogger.log_epoch(epoch, val_loss, val_metric)

                if config.debug:
                    val_str = f", Val Loss: {val_loss:.4f}, Val Metric: {val_metric:.4f}" if val_loss is not None else ""
                    console.print(f"Epoch: {epoch} | Loss: {train_loss:.4f}{val_str}", style="info_text")

                if while_training is not None:
                    while_training(epoch, logs)

            # Leave schedule-free weights in their evaluation state for prediction.
            model.eval()
            if schedule_free:
                optimizer.eval()

        finally:
            for sig, handler in previous_handlers.items():
                if handler is not None:
                    signal.signal(sig, handler)

            if self.mclogger:
                self.mclogger.stop()

        if config.debug:
            console.print("--- Training finished ---", style="info_title")

        return history
