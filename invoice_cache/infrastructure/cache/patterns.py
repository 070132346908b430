"""
Glob Pattern Matching for Cache Keys

Both cache backends enumerate keys with the same glob dialect, so the
in-process fallback must match exactly what Redis ``SCAN MATCH`` matches
for the patterns this package builds.

Dialect:
    *      any sequence of characters, including the ``:`` separator
    ?      exactly one character
    \\x    the literal character x
    other  itself (``[`` and ``]`` are literal here; patterns built by
           this package always escape them, so Redis agrees)

Matching is anchored: the pattern must cover the whole key, so
``clients:u1:*`` matches ``clients:u1:p1`` but not ``xclients:u1:p1``.
"""

import re
from functools import lru_cache

GLOB_SPECIAL_CHARS = frozenset("*?[]\\")


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """
    Translate a glob pattern into a compiled regular expression.

    Args:
        pattern: Glob pattern (see module docstring for the dialect)

    Returns:
        Compiled regex; use ``fullmatch`` to test keys
    """
    parts: list[str] = []
    index = 0
    length = len(pattern)

    while index < length:
        char = pattern[index]

        if char == "\\" and index + 1 < length:
            parts.append(re.escape(pattern[index + 1]))
            index += 2
            continue

        if char == "*":
            # Collapse runs of '*' so '**' does not produce '.*.*'
            if not parts or parts[-1] != ".*":
                parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
        index += 1

    return re.compile("".join(parts), re.DOTALL)


def matches(pattern: str, key: str) -> bool:
    """Return True if ``key`` matches the glob ``pattern`` in full."""
    return compile_glob(pattern).fullmatch(key) is not None


def escape_glob(value: str) -> str:
    """
    Escape glob metacharacters so ``value`` matches only itself.

    Used when an owner id or other caller data is embedded in a pattern.

    Example:
        >>> escape_glob("a*b")
        'a\\\\*b'
    """
    return "".join(f"\\{char}" if char in GLOB_SPECIAL_CHARS else char for char in value)


def literal_prefix(pattern: str) -> str:
    """
    Return the part of ``pattern`` before its first wildcard, unescaped.

    Lets a store skip keys cheaply before running the full regex.
    """
    prefix: list[str] = []
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if char == "\\" and index + 1 < len(pattern):
            prefix.append(pattern[index + 1])
            index += 2
            continue
        if char in "*?":
            break
        prefix.append(char)
        index += 1
    return "".join(prefix)
