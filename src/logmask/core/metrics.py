"""
Prometheus metrics for log masking.

In-memory counters only; scraping and storage are left to Prometheus.
"""

from typing import Optional

import structlog
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Info

from .. import __version__

logger = structlog.get_logger(__name__)


class MaskingMetrics:
    """
    Metrics collection for the masking engine.

    Pass a dedicated ``CollectorRegistry`` when more than one collector is
    created in a process (tests, multiple engines); metric names are unique
    per registry.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        registry = registry if registry is not None else REGISTRY
        self.registry = registry

        self.service_info = Info(
            "logmask",
            "LogMask information",
            registry=registry,
        )
        self.service_info.info({"version": __version__})

        self.messages_masked_total = Counter(
            "logmask_messages_masked_total",
            "Total messages passed through the masking engine",
            registry=registry,
        )

        self.rule_matches_total = Counter(
            "logmask_rule_matches_total",
            "Total outer spans matched per masking rule",
            ["rule"],
            registry=registry,
        )

        self.rule_errors_total = Counter(
            "logmask_rule_errors_total",
            "Total failures while applying a masking rule",
            ["rule"],
            registry=registry,
        )

        self.rules_loaded = Gauge(
            "logmask_rules_loaded",
            "Number of masking rules currently loaded",
            registry=registry,
        )

        self.rules_rejected_total = Counter(
            "logmask_rules_rejected_total",
            "Total masking rule definitions rejected at load time",
            ["reason"],
            registry=registry,
        )

    def record_message(self) -> None:
        self.messages_masked_total.inc()

    def record_rule_matches(self, rule_id: str, count: int) -> None:
        """Record outer-span matches for one rule on one message."""
        if count > 0:
            self.rule_matches_total.labels(rule=rule_id).inc(count)

    def record_rule_error(self, rule_id: str) -> None:
        self.rule_errors_total.labels(rule=rule_id).inc()

    def set_rules_loaded(self, count: int) -> None:
        self.rules_loaded.set(count)

    def record_rule_rejected(self, reason: str) -> None:
        self.rules_rejected_total.labels(reason=reason).inc()
