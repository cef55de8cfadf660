"""
Masking engine applying configured redaction rules to log messages.

Every rule is applied in two stages: the rule's match pattern selects outer
spans, and within each span only the sub-pattern matches are replaced. Rules
run in configured order, each one on the output of the previous one.
"""

import re
from typing import Any, Iterable, Optional, Tuple

import structlog

from .exceptions import ApplyTimeError
from .metrics import MaskingMetrics
from .rules import MaskingRule, RuleStore

logger = structlog.get_logger(__name__)


class MaskingEngine:
    """
    Applies an ordered, immutable rule list to log messages.

    Features:
    - Two-stage substitution (outer span, then sub-pattern inside it)
    - Rules see the output of the rules before them
    - Group references in replacements (``$1``, ``${name}``)
    - A failing rule is skipped for that message only

    The engine holds no mutable state after construction and can be shared
    between threads.
    """

    def __init__(
        self,
        rules: Iterable[MaskingRule] = (),
        metrics: Optional[MaskingMetrics] = None,
    ) -> None:
        self._rules: Tuple[MaskingRule, ...] = tuple(rules)
        self.metrics = metrics
        logger.info("Masking engine initialized", rules=len(self._rules))

    @classmethod
    def from_store(
        cls,
        store: RuleStore,
        metrics: Optional[MaskingMetrics] = None,
    ) -> "MaskingEngine":
        """Create an engine from the rules a store loads."""
        return cls(store.load(), metrics=metrics if metrics is not None else store.metrics)

    @property
    def rules(self) -> Tuple[MaskingRule, ...]:
        return self._rules

    @property
    def enabled(self) -> bool:
        return bool(self._rules)

    def mask(self, message: Any) -> str:
        """
        Mask a single log message.

        Args:
            message: The raw message; non-strings are converted with ``str()``

        Returns:
            The masked message, or the input unchanged when no rules are loaded
        """
        if not isinstance(message, str):
            message = self._to_text(message)

        if not self._rules:
            return message

        for rule in self._rules:
            try:
                message = self.apply_rule(rule, message)
            except ApplyTimeError as e:
                logger.warning(
                    "Masking rule failed, skipped for this message",
                    rule_id=rule.id,
                    error=e.message,
                    error_type=type(e.__cause__).__name__,
                )
                if self.metrics:
                    self.metrics.record_rule_error(rule.id)

        if self.metrics:
            self.metrics.record_message()

        return message

    def _to_text(self, message: Any) -> str:
        """Convert a non-string message, falling back to ``repr()`` then ``""``."""
        try:
            return str(message)
        except Exception as e:
            logger.warning(
                "Could not convert log message to text",
                message_type=type(message).__name__,
                error=str(e),
                error_type=type(e).__name__,
            )

        try:
            return repr(message)
        except Exception:
            return ""

    def apply_rule(self, rule: MaskingRule, message: str) -> str:
        """
        Apply one rule to a message.

        Raises:
            ApplyTimeError: if matching or substitution fails
        """
        matches = 0

        def mask_span(outer: "re.Match[str]") -> str:
            nonlocal matches
            matches += 1
            return rule.sub_pattern.sub(rule.replacement.expand, outer.group(0))

        try:
            masked = rule.match_pattern.sub(mask_span, message)
        except Exception as e:
            raise ApplyTimeError(
                f"Failed to apply masking rule {rule.id}: {e}", rule_id=rule.id
            ) from e

        if self.metrics:
            self.metrics.record_rule_matches(rule.id, matches)

        return masked
