"""
Masking rule model and the store that loads rules from configuration.

Each rule is defined by up to three properties sharing a root name ``R``:

    R           regex selecting the span that may contain a secret
    R.REPLACE   regex selecting the secret inside that span
    R.REPLACER  replacement text, ``*`` when absent
"""

import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple, Union

import structlog

from ..config import MaskingSettings
from .exceptions import ConfigLoadError, RulePatternError
from .metrics import MaskingMetrics
from .patterns import Replacement, compile_pattern
from .properties import read_properties

logger = structlog.get_logger(__name__)

REPLACE_SUFFIX = ".REPLACE"
REPLACER_SUFFIX = ".REPLACER"
DEFAULT_REPLACEMENT = "*"


@dataclass(frozen=True)
class MaskingRule:
    """One configured category of sensitive data."""

    id: str
    match_pattern: "re.Pattern[str]"
    sub_pattern: "re.Pattern[str]"
    replacement: Replacement

    @classmethod
    def compile(
        cls,
        rule_id: str,
        match_regex: str,
        sub_regex: str,
        replacement: str = DEFAULT_REPLACEMENT,
    ) -> "MaskingRule":
        """
        Build a rule from regex sources.

        Raises:
            RulePatternError: if either regex or the replacement is invalid
        """
        match_pattern = compile_pattern(match_regex, rule_id=rule_id, key=rule_id)
        sub_pattern = compile_pattern(
            sub_regex, rule_id=rule_id, key=rule_id + REPLACE_SUFFIX
        )
        return cls(
            id=rule_id,
            match_pattern=match_pattern,
            sub_pattern=sub_pattern,
            replacement=Replacement.parse(replacement, sub_pattern, rule_id=rule_id),
        )


def _is_root_key(key: str) -> bool:
    return not (key.endswith(REPLACER_SUFFIX) or key.endswith(REPLACE_SUFFIX))


def _root_of(key: str) -> str:
    for suffix in (REPLACER_SUFFIX, REPLACE_SUFFIX):
        if key.endswith(suffix):
            return key[: -len(suffix)]
    return key


def parse_rules(
    properties: Mapping[str, str],
    default_replacement: str = DEFAULT_REPLACEMENT,
    metrics: Optional[MaskingMetrics] = None,
) -> Tuple[MaskingRule, ...]:
    """
    Turn flat key/value properties into an ordered tuple of rules.

    Rules come out in the order their root keys appear. A rule with a bad
    regex, a bad replacement or no ``.REPLACE`` entry is dropped and
    reported; the remaining rules still load.
    """
    rules: List[MaskingRule] = []

    for key in properties:
        if _is_root_key(key):
            continue
        if _root_of(key) not in properties:
            logger.warning("Ignoring masking key without a root pattern", key=key)
            if metrics:
                metrics.record_rule_rejected("orphan_key")

    for key, match_regex in properties.items():
        if not _is_root_key(key):
            continue

        sub_regex = properties.get(key + REPLACE_SUFFIX)
        if sub_regex is None:
            logger.warning(
                "Skipping masking rule without sub-pattern",
                rule_id=key,
                missing_key=key + REPLACE_SUFFIX,
            )
            if metrics:
                metrics.record_rule_rejected("missing_sub_pattern")
            continue

        replacement = properties.get(key + REPLACER_SUFFIX, default_replacement)

        try:
            rule = MaskingRule.compile(key, match_regex, sub_regex, replacement)
        except RulePatternError as e:
            logger.warning(
                "Skipping invalid masking rule",
                rule_id=key,
                key=e.details.get("key"),
                error=e.message,
            )
            if metrics:
                metrics.record_rule_rejected("invalid_pattern")
            continue

        rules.append(rule)

    return tuple(rules)


class RuleStore:
    """
    Loads masking rules once and hands out the immutable result.

    The configuration source is read on the first call to ``load()`` (or
    the first access of ``rules``). Concurrent first callers wait on a lock
    and all of them see the same tuple.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        properties: Optional[Mapping[str, str]] = None,
        encoding: str = "utf-8",
        default_replacement: str = DEFAULT_REPLACEMENT,
        metrics: Optional[MaskingMetrics] = None,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self.encoding = encoding
        self.default_replacement = default_replacement
        self.metrics = metrics
        self._properties: Optional[Dict[str, str]] = (
            dict(properties) if properties is not None else None
        )
        self._rules: Optional[Tuple[MaskingRule, ...]] = None
        self._masking_enabled = False
        self._lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: MaskingSettings,
        metrics: Optional[MaskingMetrics] = None,
    ) -> "RuleStore":
        """Build a store for the configured patterns file."""
        if not settings.enabled:
            logger.info("Log masking disabled by configuration")
            return cls(metrics=metrics)

        return cls(
            path=settings.patterns_path,
            encoding=settings.encoding,
            default_replacement=settings.default_replacement,
            metrics=metrics,
        )

    @property
    def rules(self) -> Tuple[MaskingRule, ...]:
        return self.load()

    @property
    def masking_enabled(self) -> bool:
        """True once a configuration source has been loaded."""
        self.load()
        return self._masking_enabled

    def load(self) -> Tuple[MaskingRule, ...]:
        """Load the rules if that has not happened yet and return them."""
        if self._rules is not None:
            return self._rules

        with self._lock:
            if self._rules is None:
                self._rules = self._load()
        return self._rules

    def _load(self) -> Tuple[MaskingRule, ...]:
        properties = self._properties
        if properties is None:
            properties = self._read_source()
            if properties is None:
                return ()

        self._masking_enabled = True
        rules = parse_rules(properties, self.default_replacement, self.metrics)

        logger.info(
            "Masking rules loaded",
            source=str(self.path) if self.path else "<memory>",
            rules=len(rules),
            rule_ids=[rule.id for rule in rules],
        )
        if self.metrics:
            self.metrics.set_rules_loaded(len(rules))

        return rules

    def _read_source(self) -> Optional[Dict[str, str]]:
        if self.path is None:
            logger.info("No masking patterns source configured, masking disabled")
            return None

        if not self.path.exists():
            logger.warning(
                "Masking patterns file not found, masking disabled",
                path=str(self.path),
            )
            return None

        try:
            return read_properties(self.path, self.encoding)
        except ConfigLoadError as e:
            logger.error(
                "Error loading the masking patterns, masking disabled",
                error=e.message,
                error_code=e.error_code,
            )
            return None
