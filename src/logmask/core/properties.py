"""
Reader for Java-style ``.properties`` files.

Follows the ``java.util.Properties.load`` line format so that masking
configuration written for the JVM tooling can be used unchanged.
"""

import re
from pathlib import Path
from typing import Dict, Iterator, List, Tuple, Union

from .exceptions import ConfigLoadError

_SEPARATORS = "=:"
_WHITESPACE = " \t\f"
_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
# Only these end a line; \f and other Unicode breaks are ordinary characters
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def _logical_lines(text: str) -> Iterator[str]:
    """Join continuation lines and drop comments and blank lines."""
    pending: List[str] = []

    for raw in _LINE_BREAK.split(text):
        line = raw.lstrip(_WHITESPACE) if pending else raw
        if not pending:
            stripped = line.lstrip(_WHITESPACE)
            if not stripped or stripped[0] in "#!":
                continue
            line = stripped

        # An odd number of trailing backslashes continues the line
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending.append(line[:-1])
            continue

        pending.append(line)
        yield "".join(pending)
        pending = []

    if pending:
        yield "".join(pending)


def _unescape(chunk: str) -> str:
    out: List[str] = []
    i = 0
    while i < len(chunk):
        ch = chunk[i]
        if ch != "\\" or i + 1 >= len(chunk):
            out.append(ch)
            i += 1
            continue

        nxt = chunk[i + 1]
        if nxt == "u":
            digits = chunk[i + 2:i + 6]
            if len(digits) != 4:
                raise ValueError(f"malformed \\uxxxx encoding: {chunk[i:]!r}")
            out.append(chr(int(digits, 16)))
            i += 6
        else:
            out.append(_ESCAPES.get(nxt, nxt))
            i += 2

    return "".join(out)


def _split_entry(line: str) -> Tuple[str, str]:
    """Split a logical line into its raw key and raw value."""
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == "\\":
            i += 2
            continue
        if ch in _SEPARATORS or ch in _WHITESPACE:
            break
        i += 1

    key = line[:i]
    rest = line[i:].lstrip(_WHITESPACE)
    if rest and rest[0] in _SEPARATORS:
        rest = rest[1:].lstrip(_WHITESPACE)
    return key, rest


def load_properties(text: str) -> Dict[str, str]:
    """
    Parse properties text into an ordered mapping.

    Keys keep the order of their first appearance; a repeated key keeps
    its original position and takes the last value.

    Raises:
        ValueError: on a malformed ``\\uxxxx`` escape
    """
    properties: Dict[str, str] = {}
    for line in _logical_lines(text):
        raw_key, raw_value = _split_entry(line)
        properties[_unescape(raw_key)] = _unescape(raw_value)
    return properties


def read_properties(path: Union[str, Path], encoding: str = "utf-8") -> Dict[str, str]:
    """
    Read and parse a properties file.

    Raises:
        ConfigLoadError: if the file is missing, unreadable or malformed
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigLoadError(f"Properties file not found: {path}", path=str(path))

    try:
        text = path.read_text(encoding=encoding)
        return load_properties(text)
    except (OSError, UnicodeDecodeError, ValueError) as e:
        raise ConfigLoadError(
            f"Could not read properties file {path}: {e}", path=str(path)
        ) from e
