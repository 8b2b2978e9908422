"""
Commandant tokens (quote-aware splitting of a template string)

Scope
- Split a template into runs that share one quoting context, so the expander
  knows which escaping rules apply where a placeholder sits.
- This is not a shell parser: nothing is expanded, only quote boundaries are
  located.

Rules
- Unquoted text forms BARE tokens. A backslash keeps the following character in
  the same run, so \\' and \\" never open a quoted run.
- '...' forms one SINGLE token. Backslashes have no meaning inside it.
- "..." forms one DOUBLE token. A backslash keeps the following character, so
  \\" does not close the run.
- Token text never contains the delimiting quotes; adjacent quoted runs are
  separate tokens and an empty pair yields an empty token.
- A quote that is never closed raises UnbalancedQuoteError.
"""
from enum import Enum
from typing import NamedTuple

from .faults import UnbalancedQuoteError


class Quoting(Enum):
    BARE = ""
    DOUBLE = '"'
    SINGLE = "'"


class Token(NamedTuple):
    text: str
    quoting: Quoting

    def __str__(self):
        return self.quoting.value + self.text + self.quoting.value


def tokenize(template, /):
    """
    Lazily yield the tokens of template from left to right.

    The generator is single pass: once consumed it cannot be restarted.
    """
    if not isinstance(template, str):
        raise TypeError(f"tokenize() argument must be a string, not {type(template).__name__}")
    buffer = []
    index, length = 0, len(template)
    while index < length:
        char = template[index]
        if char == "'" or char == '"':
            if buffer:
                yield Token("".join(buffer), Quoting.BARE)
                buffer.clear()
            quoting, start = Quoting(char), index
            index += 1
            while True:
                if index >= length:
                    raise UnbalancedQuoteError(
                        f"unterminated {char} opened at offset {start}",
                        template=template,
                        offset=start
                    )
                char = template[index]
                if char == quoting.value:
                    break
                if char == "\\" and quoting is Quoting.DOUBLE and index + 1 < length:
                    buffer.append(template[index:index + 2])
                    index += 2
                    continue
                buffer.append(char)
                index += 1
            yield Token("".join(buffer), quoting)
            buffer.clear()
            index += 1
            continue
        if char == "\\" and index + 1 < length:
            buffer.append(template[index:index + 2])
            index += 2
            continue
        buffer.append(char)
        index += 1
    if buffer:
        yield Token("".join(buffer), Quoting.BARE)


__all__ = (
    "Quoting",
    "Token",
    "tokenize",
)
