"""
Hooks for wiring a MaskingEngine into logging pipelines.

The host builds one engine at startup and passes it to the hook it needs:
``MaskingFilter`` for the standard library, ``MaskingProcessor`` for structlog.
"""

import logging
from typing import Any, Iterable, MutableMapping, Optional

import structlog

from .config import Settings, get_settings
from .core.masking import MaskingEngine
from .core.metrics import MaskingMetrics
from .core.rules import RuleStore

logger = structlog.get_logger(__name__)


def build_engine(
    settings: Optional[Settings] = None,
    metrics: Optional[MaskingMetrics] = None,
) -> MaskingEngine:
    """Load the configured rules and return a ready engine."""
    settings = settings or get_settings()
    if metrics is None and settings.metrics_enabled:
        metrics = MaskingMetrics()

    logger.debug(
        "Building masking engine",
        patterns_path=str(settings.masking.patterns_path),
        metrics_enabled=metrics is not None,
    )
    store = RuleStore.from_settings(settings.masking, metrics=metrics)
    return MaskingEngine.from_store(store, metrics=metrics)


class MaskingFilter(logging.Filter):
    """
    Standard library filter that masks each record's message.

    The record's message is formatted with its arguments first, so secrets
    passed as ``%s`` arguments are masked as well.
    """

    def __init__(self, engine: MaskingEngine, name: str = "") -> None:
        super().__init__(name)
        self.engine = engine

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.engine.enabled:
            return True

        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Leave records with broken %-args for the handler to report
            return True

        record.msg = self.engine.mask(message)
        record.args = None
        return True


class MaskingProcessor:
    """
    structlog processor that masks string values of selected keys.

    Only ``event`` is masked by default; pass more keys to cover fields that
    carry free text.
    """

    def __init__(self, engine: MaskingEngine, keys: Iterable[str] = ("event",)) -> None:
        self.engine = engine
        self.keys = tuple(keys)

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: MutableMapping[str, Any],
    ) -> MutableMapping[str, Any]:
        for key in self.keys:
            value = event_dict.get(key)
            if isinstance(value, str):
                event_dict[key] = self.engine.mask(value)
        return event_dict


def configure_logging(log_level: str = "INFO", engine: Optional[MaskingEngine] = None) -> None:
    """Configure structured logging, masking events when an engine is given."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if engine is not None:
        processors.append(MaskingProcessor(engine))
    processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
