"""
Regex helpers for masking rules.

Masking configuration is usually shared with JVM services, so patterns may
use ``(?<name>...)`` groups and ``\\k<name>`` back-references, and
replacements use ``$1`` / ``${name}`` references. Both are accepted here and
mapped onto Python's ``re`` module.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .exceptions import RulePatternError

_NAMED_GROUP = re.compile(r"(\\*)\(\?<(?![=!])")
_NAMED_BACKREF = re.compile(r"(\\*)\\k<([A-Za-z_][A-Za-z0-9_]*)>")
_DIGITS = "0123456789"


def _unescaped(match: "re.Match[str]") -> bool:
    # An odd run of backslashes escapes the construct that follows it
    return len(match.group(1)) % 2 == 0


def translate_pattern(source: str) -> str:
    """Rewrite named-group syntax into the form ``re`` understands."""
    translated = _NAMED_GROUP.sub(
        lambda m: m.group(1) + "(?P<" if _unescaped(m) else m.group(0), source
    )
    return _NAMED_BACKREF.sub(
        lambda m: f"{m.group(1)}(?P={m.group(2)})" if _unescaped(m) else m.group(0),
        translated,
    )


def compile_pattern(source: str, rule_id: Optional[str] = None, key: Optional[str] = None) -> "re.Pattern[str]":
    """
    Compile a masking regex.

    Raises:
        RulePatternError: if the source is empty or does not compile
    """
    if not source:
        raise RulePatternError("Empty regular expression", rule_id=rule_id, key=key)

    try:
        return re.compile(translate_pattern(source))
    except (re.error, OverflowError, RecursionError) as e:
        raise RulePatternError(
            f"Invalid regular expression {source!r}: {e}", rule_id=rule_id, key=key
        ) from e


@dataclass(frozen=True)
class GroupRef:
    group: Union[int, str]


# A segment is either literal text or a group reference (index or name)
Segment = Union[str, GroupRef]


@dataclass(frozen=True)
class Replacement:
    """
    Parsed replacement template.

    ``$n`` takes as many digits as still name an existing group, ``${name}``
    refers to a named group and a backslash makes the next character
    literal. References are checked against the compiled pattern when the
    rule is loaded.
    """

    template: str
    segments: Tuple[Segment, ...]

    @property
    def is_literal(self) -> bool:
        return all(isinstance(s, str) for s in self.segments)

    @classmethod
    def parse(
        cls,
        template: str,
        pattern: "re.Pattern[str]",
        rule_id: Optional[str] = None,
    ) -> "Replacement":
        segments = []
        literal = []
        i = 0

        def fail(reason: str) -> RulePatternError:
            return RulePatternError(
                f"Invalid replacement {template!r}: {reason}", rule_id=rule_id
            )

        while i < len(template):
            ch = template[i]
            if ch == "\\":
                if i + 1 >= len(template):
                    raise fail("character to be escaped is missing")
                literal.append(template[i + 1])
                i += 2
                continue

            if ch != "$":
                literal.append(ch)
                i += 1
                continue

            i += 1
            if i >= len(template):
                raise fail("group index is missing")

            if template[i] == "{":
                end = template.find("}", i)
                if end == -1:
                    raise fail("named group is missing trailing '}'")
                name = template[i + 1:end]
                if name not in pattern.groupindex:
                    raise fail(f"no group with name {name!r}")
                ref: Union[int, str] = name
                i = end + 1
            elif template[i] in _DIGITS:
                ref = int(template[i])
                if ref > pattern.groups:
                    raise fail(f"no group {ref}")
                i += 1
                while i < len(template) and template[i] in _DIGITS:
                    candidate = ref * 10 + int(template[i])
                    if candidate > pattern.groups:
                        break
                    ref = candidate
                    i += 1
            else:
                raise fail("illegal group reference")

            if literal:
                segments.append("".join(literal))
                literal = []
            segments.append(GroupRef(ref))

        if literal:
            segments.append("".join(literal))

        return cls(template=template, segments=tuple(segments))

    def expand(self, match: "re.Match[str]") -> str:
        """Render the template for one match."""
        parts = []
        for segment in self.segments:
            if isinstance(segment, GroupRef):
                parts.append(match.group(segment.group) or "")
            else:
                parts.append(segment)
        return "".join(parts)
