"""
Test cases for the CLI module (cli.py)
"""

import json
import os
from unittest.mock import patch

import pytest
import numpy as np

from cli import (
    load_data,
    save_model,
    train_command,
    info_command,
    build_parser,
    main,
    _split_model_path,
)
from kohonen import SOM, SOMConfig, Dataset


@pytest.fixture
def sample_csv_file(tmp_path):
    """Create a temporary CSV file for testing"""
    path = tmp_path / "data.csv"
    path.write_text("a,b,c\n1.0,2.0,3.0\n4.0,5.0,6.0\n7.0,8.0,9.0\n")
    return str(path)


@pytest.fixture
def sample_json_file(tmp_path):
    """Create a temporary JSON file for testing"""
    path = tmp_path / "data.json"
    path.write_text(json.dumps([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0], [7.0, 8.0, 9.0]]))
    return str(path)


@pytest.fixture
def sample_npy_file(tmp_path):
    """Create a temporary NPY file for testing"""
    path = tmp_path / "data.npy"
    np.save(path, np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0], [7.0, 8.0, 9.0]]))
    return str(path)


@pytest.fixture
def sample_npz_file(tmp_path):
    """Create a temporary NPZ file for testing"""
    path = tmp_path / "data.npz"
    np.savez(path, data=np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0], [7.0, 8.0, 9.0]]))
    return str(path)


@pytest.fixture
def model_dir(tmp_path):
    return str(tmp_path / "models")


@pytest.fixture
def trained_model_file(sample_csv_file, model_dir):
    """Train a small model through the CLI and return its path"""
    main(
        [
            "train", sample_csv_file,
            "--width", "3", "--height", "3",
            "--order-epochs", "3", "--fine-tune-epochs", "1",
            "--normalize", "--seed", "1",
            "--model-dir", model_dir,
        ]
    )
    return os.path.join(model_dir, "som.pkl")


@pytest.mark.cli
@pytest.mark.io
class TestLoadData:
    """Tests for load_data function"""

    def test_load_csv_file(self, sample_csv_file):
        dataset = load_data(sample_csv_file)
        assert isinstance(dataset, Dataset)
        assert dataset.data.shape == (3, 3)
        assert dataset.names == ["a", "b", "c"]

    @pytest.mark.parametrize(
        "fixture", ["sample_json_file", "sample_npy_file", "sample_npz_file"]
    )
    def test_load_other_formats(self, fixture, request):
        dataset = load_data(request.getfixturevalue(fixture), "auto")
        assert dataset.data.shape == (3, 3)
        assert dataset.data.dtype == np.float64

    def test_load_nonexistent_file(self):
        with pytest.raises(FileNotFoundError):
            load_data("nonexistent.csv")

    def test_load_unsupported_format(self, sample_csv_file):
        with pytest.raises(ValueError, match="Unsupported format"):
            load_data(sample_csv_file, "txt")

    def test_load_invalid_csv(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("invalid,csv,content\nno,numbers,here")
        with pytest.raises(ValueError, match="Failed to load"):
            load_data(str(path))

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{invalid json}")
        with pytest.raises(ValueError):
            load_data(str(path))


@pytest.mark.cli
@pytest.mark.io
class TestSaveModel:
    """Tests for save_model function"""

    def test_save_model_success(self, tmp_path):
        som = SOM(SOMConfig(width=2, height=2, n_features=2, seed=0))
        save_model(som, str(tmp_path), "model")
        assert (tmp_path / "model.pkl").exists()
        assert (tmp_path / "model.txt").exists()

    def test_save_model_failure(self):
        som = SOM(SOMConfig(width=2, height=2, n_features=2, seed=0))
        with patch.object(som, "save", side_effect=IOError("Save failed")):
            with patch("sys.exit") as mock_exit:
                with patch("builtins.print") as mock_print:
                    save_model(som, "unused", "model")
                    mock_print.assert_called()
                    mock_exit.assert_called_with(1)


@pytest.mark.cli
@pytest.mark.unit
class TestParser:
    def test_train_defaults(self):
        args = build_parser().parse_args(["train", "data.csv"])
        assert args.mode == "offline"
        assert args.lattice == "rectangular"
        assert args.distance_metric == "euclidean"
        assert args.model_dir == "models"
        assert args.name == "som"
        assert args.learning_rate is None
        assert not args.resume

    def test_invalid_choice(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["train", "data.csv", "--lattice", "triangle"])

    def test_split_model_path(self):
        assert _split_model_path(os.path.join("models", "som.pkl")) == ("models", "som")
        assert _split_model_path("som.pkl") == (".", "som")


@pytest.mark.cli
@pytest.mark.integration
class TestTrainCommand:
    """Tests for train_command function"""

    def test_offline_training(self, trained_model_file, model_dir):
        assert os.path.exists(trained_model_file)
        assert os.path.exists(os.path.join(model_dir, "som.txt"))

        som = SOM.load(model_dir, "som")
        assert (som.width, som.height, som.n_features) == (3, 3, 3)
        assert som.metadata["total_epochs"] == 4

    def test_training_output(self, sample_csv_file, model_dir, capsys):
        main(
            [
                "train", sample_csv_file,
                "--width", "2", "--height", "2",
                "--order-epochs", "2", "--fine-tune-epochs", "1",
                "--lattice", "hexagonal", "--model-dir", model_dir,
            ]
        )
        output = capsys.readouterr().out
        assert "Training completed!" in output
        assert "SOM statistics" in output
        assert "Model saved to:" in output

    def test_streaming_resume(self, sample_csv_file, model_dir):
        argv = [
            "train", sample_csv_file,
            "--mode", "streaming", "--width", "3", "--height", "2",
            "--normalize", "--resume", "--model-dir", model_dir,
        ]
        main(argv)
        assert SOM.load(model_dir, "som").metadata["total_samples_seen"] == 3

        main(argv + ["--passes", "2"])
        assert SOM.load(model_dir, "som").metadata["total_samples_seen"] == 9

    def test_resume_shape_mismatch(self, trained_model_file, sample_csv_file, model_dir):
        with pytest.raises(SystemExit) as excinfo:
            main(
                [
                    "train", sample_csv_file,
                    "--width", "4", "--height", "4",
                    "--resume", "--model-dir", model_dir,
                ]
            )
        assert excinfo.value.code == 1

    def test_resume_lattice_mismatch(self, trained_model_file, sample_csv_file, model_dir):
        with pytest.raises(SystemExit) as excinfo:
            main(
                [
                    "train", sample_csv_file,
                    "--width", "3", "--height", "3",
                    "--lattice", "hexagonal",
                    "--resume", "--model-dir", model_dir,
                ]
            )
        assert excinfo.value.code == 1

    def test_train_command_data_loading_error(self, sample_csv_file):
        args = build_parser().parse_args(["train", sample_csv_file])
        with patch("cli.load_data", side_effect=Exception("Load failed")):
            with patch("sys.exit") as mock_exit:
                with patch("builtins.print"):
                    train_command(args)
                    mock_exit.assert_called_with(1)

    def test_missing_input(self, tmp_path, capsys):
        with pytest.raises(SystemExit):
            main(["train", str(tmp_path / "missing.csv")])
        assert "Error during training" in capsys.readouterr().err


@pytest.mark.cli
@pytest.mark.integration
class TestAnalysisCommands:
    """Tests for stats, features and info"""

    def test_stats_command(self, trained_model_file, sample_csv_file, capsys):
        main(["stats", trained_model_file, sample_csv_file, "--normalize"])
        output = capsys.readouterr().out
        assert "SOM statistics" in output
        assert "samples:            3" in output

    def test_stats_dimension_mismatch(self, trained_model_file, tmp_path):
        path = tmp_path / "two.csv"
        path.write_text("a,b\n1,2\n")
        with pytest.raises(SystemExit):
            main(["stats", trained_model_file, str(path)])

    def test_features_command(self, trained_model_file, capsys):
        main(["features", trained_model_file, "--names", "a,b,c", "--n-clusters", "2"])
        output = capsys.readouterr().out
        assert "Feature clustering (pearson, complete)" in output
        assert "Dendrogram leaf order:" in output
        assert "Cluster 1:" in output

    def test_features_wrong_names(self, trained_model_file):
        with pytest.raises(SystemExit):
            main(["features", trained_model_file, "--names", "a,b"])

    def test_info_command(self, trained_model_file, capsys):
        main(["info", trained_model_file])
        output = capsys.readouterr().out
        assert "SOM Model Information" in output
        assert "Shape: 3x3" in output
        assert "Total Epochs: 4" in output

    def test_info_command_model_loading_error(self, tmp_path):
        args = build_parser().parse_args(["info", str(tmp_path / "missing.pkl")])
        with patch("sys.exit") as mock_exit:
            with patch("builtins.print"):
                info_command(args)
                mock_exit.assert_called_with(1)


@pytest.mark.cli
@pytest.mark.unit
class TestMain:
    def test_version(self, capsys):
        main(["version"])
        assert "Kohonen SOM CLI v0.1.0" in capsys.readouterr().out

    def test_no_command(self):
        with pytest.raises(SystemExit) as excinfo:
            main([])
        assert excinfo.value.code == 1
