from __future__ import annotations
import re
from typing import Iterable, Pattern, Union

from .errors import InvalidPattern, NoMatch
from .models import BootEntry


def compile_pattern(pattern: str) -> Pattern[str]:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        raise InvalidPattern(pattern, exc) from exc


def select_entry(entries: Iterable[BootEntry], pattern: Union[str, Pattern[str]]) -> BootEntry:
    """Return the first entry, in listing order, whose description matches `pattern`.

    String patterns are compiled case-insensitively.
    """
    regex = pattern if isinstance(pattern, re.Pattern) else compile_pattern(pattern)
    for e in entries:
        if regex.search(e.description):
            return e
    raise NoMatch(regex.pattern)
