"""
Callback system for monitoring and intervention during offline training
"""

import os
from abc import ABC, abstractmethod
from typing import Dict, TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from .training import OfflineTrainer

logger = structlog.get_logger(__name__)


class Callback(ABC):
    """Abstract base class for callbacks"""

    @abstractmethod
    def on_epoch_begin(self, epoch: int, trainer: "OfflineTrainer") -> None:
        pass

    @abstractmethod
    def on_epoch_end(self, epoch: int, trainer: "OfflineTrainer", metrics: Dict) -> None:
        pass

    @abstractmethod
    def on_training_begin(self, trainer: "OfflineTrainer") -> None:
        pass

    @abstractmethod
    def on_training_end(self, trainer: "OfflineTrainer") -> None:
        pass


class CheckpointCallback(Callback):
    """Save the model every ``interval`` epochs and once at the end"""

    def __init__(self, checkpoint_dir: str, interval: int = 100):
        self.checkpoint_dir = checkpoint_dir
        self.interval = interval
        os.makedirs(checkpoint_dir, exist_ok=True)

    def on_epoch_begin(self, epoch: int, trainer: "OfflineTrainer") -> None:
        pass

    def on_epoch_end(self, epoch: int, trainer: "OfflineTrainer", metrics: Dict) -> None:
        if epoch % self.interval == 0:
            try:
                trainer.som.save(self.checkpoint_dir, f"checkpoint_epoch_{epoch}")
            except (IOError, OSError) as e:
                logger.warning("Failed to save checkpoint", epoch=epoch, error=str(e))

    def on_training_begin(self, trainer: "OfflineTrainer") -> None:
        pass

    def on_training_end(self, trainer: "OfflineTrainer") -> None:
        try:
            trainer.som.save(self.checkpoint_dir, "final_model")
        except (IOError, OSError) as e:
            logger.warning("Failed to save final model", error=str(e))


class EarlyStoppingCallback(Callback):
    """Stop training between epochs once a metric stops improving"""

    def __init__(
        self, monitor: str = "qe", patience: int = 10, min_delta: float = 1e-4
    ):
        self.monitor = monitor
        self.patience = patience
        self.min_delta = min_delta
        self.best_value = float("inf")
        self.wait = 0

    def on_epoch_begin(self, epoch: int, trainer: "OfflineTrainer") -> None:
        pass

    def on_epoch_end(self, epoch: int, trainer: "OfflineTrainer", metrics: Dict) -> None:
        current_value = metrics.get(self.monitor, float("inf"))
        if current_value < self.best_value - self.min_delta:
            self.best_value = current_value
            self.wait = 0
        else:
            self.wait += 1
            if self.wait >= self.patience:
                trainer.stop_training = True
                logger.info("Early stopping triggered", epoch=epoch)

    def on_training_begin(self, trainer: "OfflineTrainer") -> None:
        self.best_value = float("inf")
        self.wait = 0

    def on_training_end(self, trainer: "OfflineTrainer") -> None:
        pass
