"""
Training algorithms.

``StreamingTrainer`` adapts the map one sample at a time with an internal,
never-ending decay schedule. ``OfflineTrainer`` runs a finite, two-phase epoch
schedule over a fixed dataset. They share the ``TrainingAlgorithm`` protocol
and the model's adaptation step, nothing else.
"""

import time
from datetime import datetime
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Protocol, Tuple

import numpy as np
import structlog
from tqdm import tqdm

from .callbacks import Callback, CheckpointCallback
from .config import DecaySchedule, OfflineConfig, StreamingConfig
from .core import SOM, validate_data
from .dataset import Dataset
from .exceptions import ConfigurationError
from .lattice import Coordinate
from .observability import log_training_metrics

logger = structlog.get_logger(__name__)


@dataclass
class TrainingState:
    """Transient schedule position of a trainer"""

    iteration: int = 0
    epoch: int = 0
    phase: str = ""
    learning_rate: float = 0.0
    radius: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TrainingAlgorithm(Protocol):
    som: SOM
    state: TrainingState

    def fit(self, data: Any) -> SOM:
        ...


def decay_value(
    t: int, t_max: int, initial: float, final: float, schedule: DecaySchedule
) -> float:
    """
    Value of a schedule going from initial (t=0) to final (t=t_max).

    Every schedule hits both end points exactly. Exponential decay needs two
    positive bounds; with a zero bound it interpolates linearly instead.
    """
    if t_max <= 0:
        return initial

    progress = min(max(t / t_max, 0.0), 1.0)
    if progress == 0:
        return initial

    if schedule == DecaySchedule.INVERSE:
        # Hyperbolic: drops fast early, then flattens towards final
        return final + (initial - final) * (1 - progress) / (1 + progress)
    elif schedule == DecaySchedule.COSINE:
        return final + (initial - final) * (1 + np.cos(np.pi * progress)) / 2
    elif schedule == DecaySchedule.EXPONENTIAL and initial > 0 and final > 0:
        return initial * (final / initial) ** progress
    return initial - (initial - final) * progress


def asymptotic_decay(t: int, horizon: float, initial: float, final: float) -> float:
    """Exponential approach from initial towards final, time constant horizon"""
    return final + (initial - final) * np.exp(-t / horizon)


def _as_samples(data: Any, n_features: int):
    """Arrays are validated up front; other iterables stream lazily"""
    if isinstance(data, Dataset):
        data = data.data
    if isinstance(data, (np.ndarray, list, tuple)):
        return validate_data(data, n_features)
    return data


class StreamingTrainer:
    """
    One-pass online adaptation.

    Every call to ``learn`` advances the iteration counter ``t`` and uses::

        value(t) = final + (initial - final) * exp(-t / horizon)

    for both the learning rate and the radius (radius as a fraction of the
    lattice diameter). The values approach their non-zero finals and never
    reach zero, so the map keeps following drifting input forever.

    The counter starts from the model's ``total_samples_seen``, which is
    persisted with the model: a reloaded map resumes its schedule instead of
    restarting with large steps. Pass ``start_iteration`` to override.
    """

    name = "streaming"

    def __init__(
        self,
        som: SOM,
        config: Optional[StreamingConfig] = None,
        start_iteration: Optional[int] = None,
    ):
        self.som = som
        self.config = config or StreamingConfig()

        if start_iteration is None:
            start_iteration = int(som.metadata.get("total_samples_seen", 0))
        if start_iteration < 0:
            raise ConfigurationError(
                f"start_iteration must be non-negative, got {start_iteration}"
            )

        learning_rate, radius = self.schedule(start_iteration)
        self.state = TrainingState(
            iteration=start_iteration,
            phase=self.name,
            learning_rate=learning_rate,
            radius=radius,
        )

    def schedule(self, t: int) -> Tuple[float, float]:
        """(learning_rate, radius) at iteration t"""
        cfg = self.config
        learning_rate = asymptotic_decay(
            t, cfg.horizon, cfg.initial_learning_rate, cfg.final_learning_rate
        )
        fraction = asymptotic_decay(
            t, cfg.horizon, cfg.initial_radius, cfg.final_radius
        )
        return float(learning_rate), float(fraction * self.som.lattice.diameter)

    def learn(self, sample: Any) -> Coordinate:
        """Adapt the map to one sample and return its BMU"""
        learning_rate, radius = self.schedule(self.state.iteration)

        bmu = self.som.find_bmu(sample)
        self.som.adapt_towards(sample, bmu, learning_rate, radius)

        self.state.iteration += 1
        self.state.learning_rate = learning_rate
        self.state.radius = radius
        self.som.metadata["total_samples_seen"] += 1
        return bmu

    def fit(self, data: Any, verbose: bool = False) -> SOM:
        """Present every sample once, in the given order"""
        samples = _as_samples(data, self.som.n_features)

        if self.som.needs_data_initialization and isinstance(samples, np.ndarray):
            self.som.initialize(samples)

        iterator = tqdm(samples, desc="Streaming SOM") if verbose else samples

        start_time = time.time()
        start_iteration = self.state.iteration
        for sample in iterator:
            self.learn(sample)
        n_samples = self.state.iteration - start_iteration
        duration = time.time() - start_time

        self.som.metadata["training_history"].append(
            {"trainer": self.name, "samples": n_samples, **self.state.to_dict()}
        )
        log_training_metrics(
            self.name, self.som.width, self.som.height, duration, n_samples
        )
        logger.info(
            "Streaming pass completed",
            samples=n_samples,
            iteration=self.state.iteration,
            learning_rate=self.state.learning_rate,
            radius=self.state.radius,
        )
        return self.som


class OfflineTrainer:
    """
    Multi-epoch training over a fixed dataset.

    ``order_epochs`` ordering epochs decay the learning rate and radius from
    their initial values to the ordering finals (reached on the last ordering
    epoch), then ``fine_tune_epochs`` epochs run at a constant small learning
    rate and radius. Samples are presented in the order given, so identical
    initial grids, configs and data produce bit-identical results.
    """

    name = "offline"

    # Fraction of the lattice diameter used when no initial radius is set
    AUTO_RADIUS_FRACTION = 0.75

    def __init__(self, som: SOM, config: Optional[OfflineConfig] = None):
        self.som = som
        self.config = config or OfflineConfig()

        if self.config.initial_radius is None:
            self.initial_radius = max(
                self.AUTO_RADIUS_FRACTION * som.lattice.diameter,
                self.config.order_final_radius,
            )
        else:
            self.initial_radius = self.config.initial_radius

        self.state = TrainingState(phase="ordering")
        self.callbacks: List[Callback] = []
        self.stop_training = False

    def schedule(self, epoch: int) -> Tuple[str, float, float]:
        """(phase, learning_rate, radius) for an epoch index"""
        cfg = self.config
        if epoch < cfg.order_epochs:
            t_max = max(cfg.order_epochs - 1, 1)
            learning_rate = decay_value(
                epoch,
                t_max,
                cfg.initial_learning_rate,
                cfg.order_final_learning_rate,
                cfg.decay,
            )
            radius = decay_value(
                epoch, t_max, self.initial_radius, cfg.order_final_radius, cfg.decay
            )
            return "ordering", float(learning_rate), float(radius)
        return "fine_tuning", cfg.fine_tune_learning_rate, cfg.fine_tune_radius

    def fit(self, data: Any, callbacks: Optional[List[Callback]] = None) -> SOM:
        """
        Train the SOM on data

        Args:
            data: Input data of shape (n_samples, n_features) or a Dataset
            callbacks: List of callback objects

        Returns:
            the trained SOM
        """
        if isinstance(data, Dataset):
            data = data.data
        data = validate_data(data, self.som.n_features)

        if self.som.needs_data_initialization:
            self.som.initialize(data)

        self.callbacks = list(callbacks or [])
        if self.config.checkpoint_interval:
            self.callbacks.append(
                CheckpointCallback(
                    self.config.checkpoint_dir, self.config.checkpoint_interval
                )
            )
        self.stop_training = False

        for callback in self.callbacks:
            callback.on_training_begin(self)

        start_time = time.time()
        epochs_completed = self._train_loop(data)
        duration = time.time() - start_time

        for callback in self.callbacks:
            callback.on_training_end(self)

        self.som.metadata["last_training"] = datetime.now().isoformat()
        log_training_metrics(
            self.name,
            self.som.width,
            self.som.height,
            duration,
            len(data) * epochs_completed,
            epochs_completed,
        )
        logger.info(
            "Offline training completed",
            epochs=epochs_completed,
            samples=len(data),
            duration_seconds=duration,
        )
        return self.som

    def _train_loop(self, data: np.ndarray) -> int:
        iterator = range(self.config.total_epochs)
        if self.config.verbose:
            iterator = tqdm(iterator, desc="Training SOM")

        epochs_completed = 0
        for epoch in iterator:
            for callback in self.callbacks:
                callback.on_epoch_begin(epoch, self)

            if self.stop_training:
                logger.info("Training stopped", epoch=epoch)
                break

            phase, learning_rate, radius = self.schedule(epoch)
            self.state.epoch = epoch
            self.state.phase = phase
            self.state.learning_rate = learning_rate
            self.state.radius = radius

            epoch_metrics = self._run_epoch(data, learning_rate, radius)

            if self.config.verbose:
                iterator.set_postfix(
                    {
                        "QE": f"{epoch_metrics['qe']:.4f}",
                        "σ": f"{radius:.3f}",
                        "α": f"{learning_rate:.4f}",
                    }
                )

            self.som.metadata["training_history"].append(
                {
                    "epoch": epoch,
                    "phase": phase,
                    "metrics": epoch_metrics,
                    "radius": radius,
                    "learning_rate": learning_rate,
                }
            )
            self.som.metadata["total_epochs"] += 1
            self.som.metadata["total_samples_seen"] += len(data)
            epochs_completed += 1

            for callback in self.callbacks:
                callback.on_epoch_end(epoch, self, epoch_metrics)

        return epochs_completed

    def _run_epoch(self, data: np.ndarray, learning_rate: float, radius: float) -> Dict:
        """Present every sample once; qe is the mean squared BMU distance"""
        total_error = 0.0
        for sample in data:
            bmu, distance = self.som.find_bmu_with_distance(sample)
            total_error += distance**2
            self.som.adapt_towards(sample, bmu, learning_rate, radius)
            self.state.iteration += 1
        return {"qe": total_error / len(data)}
