"""
Tests for callback functionality
"""

import os

import pytest
from kohonen import SOM, OfflineConfig, OfflineTrainer
from kohonen.callbacks import CheckpointCallback, EarlyStoppingCallback


@pytest.mark.integration
class TestCheckpointCallback:
    """Test checkpoint callback functionality"""

    @pytest.mark.unit
    def test_checkpoint_creation(self, tmp_path):
        checkpoint_dir = str(tmp_path / "checkpoints")
        callback = CheckpointCallback(checkpoint_dir, interval=2)
        assert callback.checkpoint_dir == checkpoint_dir
        assert callback.interval == 2
        assert os.path.isdir(checkpoint_dir)

    def test_checkpoint_saving(self, minimal_config, small_data, tmp_path):
        callback = CheckpointCallback(str(tmp_path), interval=2)

        som = SOM(minimal_config)
        OfflineTrainer(som, OfflineConfig(order_epochs=4, fine_tune_epochs=1)).fit(
            small_data, callbacks=[callback]
        )

        checkpoint_files = sorted(
            f for f in os.listdir(tmp_path) if f.startswith("checkpoint_epoch_")
        )
        assert checkpoint_files == [
            "checkpoint_epoch_0.pkl",
            "checkpoint_epoch_2.pkl",
            "checkpoint_epoch_4.pkl",
        ]
        assert os.path.exists(os.path.join(tmp_path, "final_model.pkl"))

        # Checkpoints are loadable models
        restored = SOM.load(tmp_path, "checkpoint_epoch_2")
        assert restored.metadata["total_epochs"] == 3

    def test_checkpoint_from_config(self, minimal_config, small_data, tmp_path):
        config = OfflineConfig(
            order_epochs=2,
            fine_tune_epochs=1,
            checkpoint_interval=1,
            checkpoint_dir=str(tmp_path / "auto"),
        )
        OfflineTrainer(SOM(minimal_config), config).fit(small_data)
        saved = set(os.listdir(tmp_path / "auto"))
        assert {"checkpoint_epoch_0.pkl", "final_model.pkl"} <= saved


@pytest.mark.integration
class TestEarlyStoppingCallback:
    """Test early stopping callback functionality"""

    @pytest.mark.unit
    def test_early_stopping_creation(self):
        callback = EarlyStoppingCallback(monitor="qe", patience=5, min_delta=1e-3)
        assert callback.monitor == "qe"
        assert callback.patience == 5
        assert callback.min_delta == 1e-3
        assert callback.best_value == float("inf")
        assert callback.wait == 0

    def test_early_stopping_trigger(self, minimal_config, small_data):
        # No epoch can improve by this much, so training stops after patience
        callback = EarlyStoppingCallback(monitor="qe", patience=1, min_delta=1e9)
        som = SOM(minimal_config)
        trainer = OfflineTrainer(som, OfflineConfig(order_epochs=10, fine_tune_epochs=5))
        trainer.fit(small_data, callbacks=[callback])

        assert trainer.stop_training
        assert som.metadata["total_epochs"] == 2

    @pytest.mark.unit
    def test_reset_on_training_begin(self, minimal_config):
        callback = EarlyStoppingCallback(patience=3)
        callback.best_value = 0.1
        callback.wait = 2
        callback.on_training_begin(OfflineTrainer(SOM(minimal_config)))
        assert callback.best_value == float("inf")
        assert callback.wait == 0

    @pytest.mark.unit
    def test_improvement_resets_wait(self, minimal_config):
        trainer = OfflineTrainer(SOM(minimal_config))
        callback = EarlyStoppingCallback(patience=2, min_delta=0.01)

        callback.on_epoch_end(0, trainer, {"qe": 1.0})
        callback.on_epoch_end(1, trainer, {"qe": 0.999})
        assert callback.wait == 1
        callback.on_epoch_end(2, trainer, {"qe": 0.5})
        assert callback.wait == 0
        assert callback.best_value == 0.5
        assert not trainer.stop_training
