"""
LogMask - Regex-driven redaction of secrets in log messages

Loads masking rules from a properties file once at startup and applies them
to every log message before it is written out.
"""

__version__ = "0.1.0"

from .core.masking import MaskingEngine
from .core.rules import MaskingRule, RuleStore
from .integrations import MaskingFilter, MaskingProcessor, build_engine

__all__ = [
    "MaskingEngine",
    "MaskingFilter",
    "MaskingProcessor",
    "MaskingRule",
    "RuleStore",
    "build_engine",
]
