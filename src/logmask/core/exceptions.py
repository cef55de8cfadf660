"""
Custom exceptions for LogMask.

Every error raised by the masking subsystem derives from LogMaskException and
carries a machine readable error code plus structured details, so callers
can log them without string parsing.
"""

from typing import Any, Dict, Optional


class LogMaskException(Exception):
    """Base exception for LogMask."""

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ConfigLoadError(LogMaskException):
    """Raised when the masking patterns resource is missing or unreadable."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        details = {}
        if path:
            details["path"] = path

        super().__init__(
            message=message,
            error_code="config_load_error",
            details=details,
        )


class RulePatternError(LogMaskException):
    """Raised when a rule's regex or replacement template is invalid."""

    def __init__(
        self,
        message: str,
        rule_id: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        details = {}
        if rule_id:
            details["rule_id"] = rule_id
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            error_code="rule_pattern_error",
            details=details,
        )


class ApplyTimeError(LogMaskException):
    """Raised when applying a rule to a message fails."""

    def __init__(self, message: str, rule_id: str) -> None:
        super().__init__(
            message=message,
            error_code="apply_time_error",
            details={"rule_id": rule_id},
        )
