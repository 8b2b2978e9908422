"""
Commandant templates (placeholder expansion)

Scope
- Fill the %s placeholders of a template with escaped arguments so that every
  argument reaches the shell as exactly one literal word.

Behavior
- Every %s consumes the next argument, left to right. In an argument vector the
  arguments are consumed across all elements in scan order.
- The template is reproduced byte for byte except at placeholders: tokens are
  joined back with the empty string and quotes without placeholders are left
  untouched.
- Inside BARE and DOUBLE tokens variable references in arguments stay live;
  inside SINGLE tokens they are escaped like everything else.
- In a quoted token the literal pieces stay quoted and the escaped argument is
  spliced between them outside the quotes:

      --name='--%s--'  +  "it's"   ->   --name='--'it\\'s'--'

  backslashes mean nothing inside single quotes and only a little inside double
  quotes, so the argument is always escaped in bare context.
- A placeholder written as \\%s in a bare or double-quoted token is literal text.

Failures
- Arguments must be str (TypeError).
- Fewer arguments than placeholders raises PlaceholderCountError, more raises
  UnusedArgumentsError; both are raised before anything is returned.
"""
import re

from .escaping import escape
from .faults import PlaceholderCountError, UnusedArgumentsError
from .tokens import Quoting, tokenize

PLACEHOLDER = "%s"

_MARKERS = re.compile(r"\\.|%s", re.DOTALL)


def _split(token):
    if token.quoting is Quoting.SINGLE:
        return token.text.split(PLACEHOLDER)
    pieces, start = [], 0
    for match in _MARKERS.finditer(token.text):
        if match.group() == PLACEHOLDER:
            pieces.append(token.text[start:match.start()])
            start = match.end()
    pieces.append(token.text[start:])
    return pieces


def _parse(template):
    return [(token, _split(token)) for token in tokenize(template)]


def _assemble(parsed, arguments):
    output = []
    for token, pieces in parsed:
        quote = token.quoting.value
        if len(pieces) == 1:
            output.append(str(token))
            continue
        preserve = token.quoting is not Quoting.SINGLE
        rendered = []
        for index, piece in enumerate(pieces):
            if index:
                rendered.append(escape(next(arguments), preserve=preserve))
            if piece:
                rendered.append(quote + piece + quote)
        output.append("".join(rendered) or quote * 2)
    return "".join(output)


def render(argv, /, *args):
    """
    Expand every element of an argument-vector template.

    Examples
        >>> render(["sh", "-c", "touch %s"], "a b")
        ['sh', '-c', 'touch a\\\\ b']
        >>> render(["cp", "%s", "%s"], "one", "two")
        ['cp', 'one', 'two']
    """
    if isinstance(argv, str | bytes):
        raise TypeError("render() argument must be a sequence of strings")
    parsed = [_parse(template) for template in argv]
    for index, argument in enumerate(args):
        if not isinstance(argument, str):
            raise TypeError(f"argument {index} must be a string, not {type(argument).__name__}")
    expected = sum(len(pieces) - 1 for tokens in parsed for _, pieces in tokens)
    if len(args) < expected:
        raise PlaceholderCountError(
            f"{expected} placeholder(s) but only {len(args)} argument(s)",
            expected=expected,
            given=len(args)
        )
    if len(args) > expected:
        raise UnusedArgumentsError(
            f"{len(args) - expected} argument(s) left over after {expected} placeholder(s)",
            expected=expected,
            given=len(args),
            unused=args[expected:]
        )
    arguments = iter(args)
    return [_assemble(tokens, arguments) for tokens in parsed]


def expand(template, /, *args):
    """
    Expand one template string; see render() for the argument rules.
    """
    if not isinstance(template, str):
        raise TypeError(f"expand() argument must be a string, not {type(template).__name__}")
    return render([template], *args)[0]


__all__ = (
    "PLACEHOLDER",
    "render",
    "expand",
)
