"""
Commandant escaping (character classes, variable scanning, backslash escaping)

Scope
- Turn an arbitrary string into text that a POSIX shell reads back as one
  literal word, optionally leaving variable references ($NAME, ${NAME}) live.

Overview
- IDENTIFIER / BARE_SAFE
  • Immutable character classes computed once at import time.
  • BARE_SAFE characters never need escaping in an unquoted shell word.

- scan(raw)
  • A three-state automaton (NONE, SIMPLE, BRACED) that walks raw once and
    reports, for every character, whether it belongs to a variable reference.

- escape(raw, preserve=True)
  • Prefix every unsafe character with a backslash; characters flagged by scan()
    are kept as they are when preserve is true.
  • A newline cannot be backslash-escaped (the shell drops it as a line
    continuation), so it is written as a single-quoted newline instead.

Grammar notes
- "$" opens a reference only when an identifier character (SIMPLE) or "{" plus
  an identifier character (BRACED) follows; a lone "$" is escaped.
- Inside "${", only identifier characters and the closing "}" belong to the
  reference. Anything else ("${HOME:-x}") ends the reference early and is
  escaped, so the shell reports a bad substitution instead of running the
  operator.

Examples
    >>> escape("abc$HOME--")
    'abc$HOME--'
    >>> escape("abc$HOME--", preserve=False)
    'abc\\\\$HOME--'
    >>> escape("a b;c")
    'a\\\\ b\\\\;c'
"""
import string
from enum import Enum

IDENTIFIER = frozenset(string.ascii_letters + string.digits + "_")
BARE_SAFE = IDENTIFIER | frozenset("#%+-.~/:=")


class Scan(Enum):
    """
    States of the variable-reference scanner.
    """
    NONE = "none"
    SIMPLE = "simple"
    BRACED = "braced"


def is_bare_safe(char, /):
    return char in BARE_SAFE


def scan(raw, /):
    """
    Yield (character, is_reference) for every character of raw, in order.

    Transitions
    - NONE   -> SIMPLE on "$" followed by an identifier character.
    - NONE   -> BRACED on "$" "{" followed by an identifier character.
    - SIMPLE stays on identifier characters, otherwise falls back to NONE and
      the character is looked at again under NONE rules.
    - BRACED stays on identifier characters; "}" closes the reference (and is
      part of it); anything else falls back to NONE like SIMPLE does.
    """
    state = Scan.NONE
    index, length = 0, len(raw)
    while index < length:
        char = raw[index]
        if state is not Scan.NONE:
            if char in IDENTIFIER:
                yield char, True
                index += 1
                continue
            if state is Scan.BRACED and char == "}":
                state = Scan.NONE
                yield char, True
                index += 1
                continue
            state = Scan.NONE
        if char == "$":
            if raw[index + 1:index + 2] in IDENTIFIER:
                state = Scan.SIMPLE
                yield char, True
                index += 1
                continue
            if raw[index + 1:index + 2] == "{" and raw[index + 2:index + 3] in IDENTIFIER:
                state = Scan.BRACED
                yield char, True
                yield "{", True
                index += 2
                continue
        yield char, False
        index += 1


def escape(raw, /, preserve=True):
    """
    Escape raw for use as (part of) an unquoted shell word.

    Parameters
    - raw: the string to escape; anything but str is a TypeError.
    - preserve: keep $NAME / ${NAME} references live (default) or escape them
      like any other character.
    """
    if not isinstance(raw, str):
        raise TypeError(f"escape() argument must be a string, not {type(raw).__name__}")
    pieces = []
    for char, reference in scan(raw) if preserve else ((char, False) for char in raw):
        if reference or char in BARE_SAFE:
            pieces.append(char)
        elif char == "\n":
            pieces.append("'\n'")
        else:
            pieces.append("\\" + char)
    return "".join(pieces)


__all__ = (
    # Constants
    "IDENTIFIER",
    "BARE_SAFE",

    # Types
    "Scan",

    # Functions
    "is_bare_safe",
    "scan",
    "escape",
)
