"""
Command Line Interface for the Kohonen SOM engine
"""

import argparse
import os
import sys
from typing import Optional, Sequence

import structlog

from kohonen import (
    SOM,
    SOMConfig,
    StreamingConfig,
    OfflineConfig,
    LatticeType,
    DistanceMetric,
    InitStrategy,
    DecaySchedule,
    FeatureDistance,
    Dataset,
    StreamingTrainer,
    OfflineTrainer,
    FeatureClusterer,
    compute_statistics,
    extract_component_planes,
    setup_logging,
    trace_operation,
    __version__,
)

# Initialize observability
setup_logging(
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    json_format=os.getenv("LOG_FORMAT", "console").lower() == "json",
)

logger = structlog.get_logger()


def load_data(file_path: str, format: str = "auto") -> Dataset:
    """Load data from csv, json, npy or npz"""
    try:
        return Dataset.from_file(file_path, format)
    except FileNotFoundError:
        raise
    except Exception as e:
        raise ValueError(f"Failed to load data from {file_path}: {e}")


def save_model(som: SOM, model_dir: str, name: str) -> None:
    """Save trained SOM model and its text dump"""
    try:
        model_path = som.save(model_dir, name)
        dump_path = som.print_model(model_dir, name)
        logger.info("Model persisted", path=str(model_path))
        print(f"Model saved to: {model_path}")
        print(f"Model dump written to: {dump_path}")
    except Exception as e:
        print(f"Error saving model: {e}", file=sys.stderr)
        sys.exit(1)


def _split_model_path(model: str):
    """'models/som.pkl' -> ('models', 'som')"""
    directory, filename = os.path.split(model)
    name, _ = os.path.splitext(filename)
    return directory or ".", name


def train_command(args) -> None:
    """Train a SOM model"""
    print(f"Loading data from: {args.input}")
    try:
        dataset = load_data(args.input, args.format)
        if args.shuffle:
            dataset.shuffle(args.seed)
        if args.normalize:
            dataset.normalize_minmax()
        print(f"Data shape: {dataset.data.shape}")

        config = SOMConfig(
            width=args.width,
            height=args.height,
            n_features=dataset.input_dimensionality,
            lattice=LatticeType(args.lattice),
            distance_metric=DistanceMetric(args.distance_metric),
            init_strategy=InitStrategy(args.init_strategy),
            seed=args.seed,
        )

        if args.resume:
            som = SOM.load_or_create(config, args.model_dir, args.name)
        else:
            som = SOM(config)

        print(
            f"Training SOM: {args.width}x{args.height} {args.lattice}, "
            f"mode={args.mode}, distance={args.distance_metric}"
        )

        with trace_operation(
            "som_training",
            mode=args.mode,
            width=args.width,
            height=args.height,
            samples=len(dataset),
        ):
            if args.mode == "streaming":
                streaming_config = StreamingConfig(
                    initial_learning_rate=(
                        args.learning_rate if args.learning_rate is not None else 0.1
                    ),
                    initial_radius=args.radius if args.radius is not None else 0.6,
                    horizon=args.horizon,
                )
                for _ in range(args.passes):
                    StreamingTrainer(som, streaming_config).fit(
                        dataset, verbose=args.verbose
                    )
            else:
                offline_config = OfflineConfig(
                    order_epochs=args.order_epochs,
                    fine_tune_epochs=args.fine_tune_epochs,
                    initial_learning_rate=(
                        args.learning_rate if args.learning_rate is not None else 0.5
                    ),
                    initial_radius=args.radius,
                    decay=DecaySchedule(args.decay),
                    verbose=args.verbose,
                )
                OfflineTrainer(som, offline_config).fit(dataset)

        print("Training completed!")
        print(compute_statistics(som, dataset))

        save_model(som, args.model_dir, args.name)

    except Exception as e:
        print(f"Error during training: {e}", file=sys.stderr)
        sys.exit(1)


def stats_command(args) -> None:
    """Print fitting statistics of a trained SOM over a dataset"""
    try:
        som = SOM.load(*_split_model_path(args.model))
        dataset = load_data(args.input, args.format)
        if args.normalize:
            dataset.normalize_minmax()
        print(compute_statistics(som, dataset))
    except Exception as e:
        print(f"Error computing statistics: {e}", file=sys.stderr)
        sys.exit(1)


def features_command(args) -> None:
    """Cluster the component planes of a trained SOM"""
    try:
        som = SOM.load(*_split_model_path(args.model))
        names = args.names.split(",") if args.names else None
        planes = extract_component_planes(som, names)

        clusterer = FeatureClusterer(FeatureDistance(args.metric), args.method)
        result = clusterer.cluster(planes, n_clusters=args.n_clusters)

        print(f"=== Feature clustering ({args.metric}, {args.method}) ===")
        print("Dendrogram leaf order: " + ", ".join(result.leaf_order))
        for cluster_id, members in sorted(result.groups().items()):
            print(f"Cluster {cluster_id}: {', '.join(members)}")
    except Exception as e:
        print(f"Error clustering features: {e}", file=sys.stderr)
        sys.exit(1)


def info_command(args) -> None:
    """Show information about a trained SOM"""
    print(f"Loading model from: {args.model}")
    try:
        som = SOM.load(*_split_model_path(args.model))

        info = som.get_info()

        print("\n=== SOM Model Information ===")
        print(f"Shape: {info['shape'][0]}x{info['shape'][1]}")
        print(f"Features: {info['n_features']}")
        print(f"Total Neurons: {info['n_neurons']}")
        print(f"Total Epochs: {info['total_epochs']}")
        print(f"Total Samples Seen: {info['total_samples']}")

        print("\n=== Configuration ===")
        for key, value in info["config"].items():
            print(f"{key}: {value}")

    except Exception as e:
        print(f"Error loading model: {e}", file=sys.stderr)
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Kohonen Self-Organizing Map CLI",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    format_choices = ["auto", "csv", "json", "npy", "npz"]

    # Train command
    train_parser = subparsers.add_parser("train", help="Train a SOM model")
    train_parser.add_argument("input", help="Input data file")
    train_parser.add_argument(
        "--mode", choices=["offline", "streaming"], default="offline", help="Trainer"
    )
    train_parser.add_argument("--width", type=int, default=20, help="SOM width")
    train_parser.add_argument("--height", type=int, default=20, help="SOM height")
    train_parser.add_argument(
        "--lattice",
        choices=[t.value for t in LatticeType],
        default="rectangular",
        help="Grid topology",
    )
    train_parser.add_argument(
        "--distance-metric",
        choices=[m.value for m in DistanceMetric],
        default="euclidean",
        help="Distance metric",
    )
    train_parser.add_argument(
        "--init-strategy",
        choices=[s.value for s in InitStrategy],
        default="random",
        help="Prototype initialization strategy",
    )
    train_parser.add_argument(
        "--order-epochs", type=int, default=100, help="Offline ordering epochs"
    )
    train_parser.add_argument(
        "--fine-tune-epochs", type=int, default=50, help="Offline fine-tuning epochs"
    )
    train_parser.add_argument(
        "--decay",
        choices=[d.value for d in DecaySchedule],
        default="linear",
        help="Offline ordering decay schedule",
    )
    train_parser.add_argument(
        "--learning-rate", type=float, help="Initial learning rate (mode default if not set)"
    )
    train_parser.add_argument(
        "--radius",
        type=float,
        help="Initial radius: cells for offline, diameter fraction for streaming",
    )
    train_parser.add_argument(
        "--horizon", type=int, default=2000, help="Streaming decay time constant"
    )
    train_parser.add_argument(
        "--passes", type=int, default=1, help="Streaming passes over the data"
    )
    train_parser.add_argument(
        "--format", choices=format_choices, default="auto", help="Input data format"
    )
    train_parser.add_argument(
        "--normalize", action="store_true", help="Min-max normalize the data"
    )
    train_parser.add_argument(
        "--shuffle", action="store_true", help="Shuffle the data before training"
    )
    train_parser.add_argument("--seed", type=int, help="Random seed for reproducibility")
    train_parser.add_argument(
        "--model-dir", default="models", help="Directory for the persisted model"
    )
    train_parser.add_argument("--name", default="som", help="Model name")
    train_parser.add_argument(
        "--resume",
        action="store_true",
        help="Continue from a persisted model when one exists",
    )
    train_parser.add_argument("--verbose", action="store_true", help="Progress bars")

    # Stats command
    stats_parser = subparsers.add_parser("stats", help="Compute fitting statistics")
    stats_parser.add_argument("model", help="Trained model file")
    stats_parser.add_argument("input", help="Input data file")
    stats_parser.add_argument(
        "--format", choices=format_choices, default="auto", help="Input data format"
    )
    stats_parser.add_argument(
        "--normalize", action="store_true", help="Min-max normalize the data"
    )

    # Features command
    features_parser = subparsers.add_parser(
        "features", help="Cluster component planes of a trained model"
    )
    features_parser.add_argument("model", help="Trained model file")
    features_parser.add_argument(
        "--metric",
        choices=[m.value for m in FeatureDistance],
        default="pearson",
        help="Component plane distance",
    )
    features_parser.add_argument(
        "--method", default="complete", help="Hierarchical linkage method"
    )
    features_parser.add_argument(
        "--n-clusters", type=int, help="Cut the dendrogram into this many clusters"
    )
    features_parser.add_argument(
        "--names", help="Comma separated feature names (x0, x1, ... if not set)"
    )

    # Info command
    info_parser = subparsers.add_parser("info", help="Show model information")
    info_parser.add_argument("model", help="Trained model file")

    # Version command
    subparsers.add_parser("version", help="Show version information")

    return parser


def main(argv: Optional[Sequence[str]] = None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "train":
        train_command(args)
    elif args.command == "stats":
        stats_command(args)
    elif args.command == "features":
        features_command(args)
    elif args.command == "info":
        info_command(args)
    elif args.command == "version":
        print(f"Kohonen SOM CLI v{__version__}")
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
