"""
Observability infrastructure for the SOM engine
Provides structured logging, training metrics and operation tracing
"""

import logging
import time
import uuid
from contextlib import contextmanager

import structlog
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


# Package metrics live outside the default global registry
REGISTRY = CollectorRegistry()

TRAINING_DURATION = Histogram(
    "kohonen_training_duration_seconds",
    "SOM training duration in seconds",
    ["trainer", "width", "height"],
    registry=REGISTRY,
)

TRAINING_EPOCHS = Counter(
    "kohonen_training_epochs_total",
    "Total offline training epochs completed",
    registry=REGISTRY,
)

SAMPLES_LEARNED = Counter(
    "kohonen_samples_learned_total",
    "Total samples presented to a trainer",
    ["trainer"],
    registry=REGISTRY,
)

MODEL_FALLBACKS = Counter(
    "kohonen_model_load_fallbacks_total",
    "Times a missing persisted model fell back to fresh initialization",
    registry=REGISTRY,
)


class CorrelationIDProcessor:
    """Add correlation ID to log entries"""

    def __call__(self, logger, method_name, event_dict):
        if "correlation_id" not in event_dict:
            event_dict["correlation_id"] = "unknown"
        return event_dict


def setup_logging(log_level: str = "INFO", json_format: bool = True) -> None:
    """Configure structured logging with structlog"""

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        CorrelationIDProcessor(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )


def get_correlation_id() -> str:
    """Generate a new correlation ID"""
    return str(uuid.uuid4())


@contextmanager
def trace_operation(operation_name: str, **extra_context):
    """Context manager for tracing operations with duration and logging"""
    logger = structlog.get_logger()
    correlation_id = get_correlation_id()
    start_time = time.time()

    logger.info(
        "Operation started",
        operation=operation_name,
        correlation_id=correlation_id,
        **extra_context,
    )

    try:
        yield correlation_id
        duration = time.time() - start_time
        logger.info(
            "Operation completed",
            operation=operation_name,
            correlation_id=correlation_id,
            duration_seconds=duration,
            **extra_context,
        )
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            "Operation failed",
            operation=operation_name,
            correlation_id=correlation_id,
            duration_seconds=duration,
            error=str(e),
            error_type=type(e).__name__,
            **extra_context,
        )
        raise


def log_training_metrics(
    trainer: str, width: int, height: int, duration: float, samples: int, epochs: int = 0
) -> None:
    """Record one training run"""
    TRAINING_DURATION.labels(
        trainer=trainer, width=str(width), height=str(height)
    ).observe(duration)
    SAMPLES_LEARNED.labels(trainer=trainer).inc(samples)
    if epochs:
        TRAINING_EPOCHS.inc(epochs)


def log_model_fallback() -> None:
    MODEL_FALLBACKS.inc()


def get_metrics() -> bytes:
    """Get Prometheus metrics in text format"""
    return generate_latest(REGISTRY)
