"""
Commandant faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every fault the library
  can surface. Codes are grouped by domain to keep logs/searches predictable.
- CommandException / CommandWarning: base types that carry message + options and
  know how to render themselves in a friendly, actionable way.
- CommandExit: several deferred faults surfaced at once.
- trigger(): central entry point to surface any fault (respecting console/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

Taxonomy
- template faults are caller errors, raised synchronously by the expander.
- configuration faults are recorded on a process while its chain is built and
  surfaced by the next terminal operation, so a chain never raises mid-way.
- execution faults come out of the terminal operation itself.
- cleanup problems are warnings: the cleanup path always completes.

Integration
- Library code builds a fault and calls trigger(fault, **options).
- Outside console mode exceptions are raised and warnings go through warnings.warn;
  in console mode they are rendered via rich on stderr.
"""
import inspect
import os.path
import sys
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, UnsetType, coalesce

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the library (stable identifiers).

    grouping (by high-level domain)
    - template (131xx)
      • PLACEHOLDER_MISMATCH, UNUSED_ARGUMENTS, UNBALANCED_QUOTE
    - configuration (132xx)
      • STREAM_ALREADY_BOUND, UNKNOWN_USER, UNSUPPORTED_PLATFORM, ALREADY_STARTED
    - execution (133xx)
      • START_FAILED, EXIT_STATUS, KILLED, CANCELLED_START
    - warnings (141xx)
      • KILL_FAILED

    spacing leaves room for future additions without reshuffling existing codes.
    """
    # --- template errors (131xx) ---
    PLACEHOLDER_MISMATCH        = 13101
    UNUSED_ARGUMENTS            = 13102
    UNBALANCED_QUOTE            = 13103

    # --- configuration errors (132xx) ---
    STREAM_ALREADY_BOUND        = 13201
    UNKNOWN_USER                = 13202
    UNSUPPORTED_PLATFORM        = 13203
    ALREADY_STARTED             = 13204

    # --- execution errors (133xx) ---
    START_FAILED                = 13301
    EXIT_STATUS                 = 13302
    KILLED                      = 13303
    CANCELLED_START             = 13304

    # --- warnings (141xx) ---
    KILL_FAILED                 = 14101

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _program(options):
    argv = options.get("argv")
    if argv:
        return os.path.basename(argv[0])
    return "commandant"


def _render(fault, palette, title_style, message_style):
    main = __import__("__main__")
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = fault.options.get("colorful", False)
    fancy = fault.options.get("fancy", False)

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), styles[style])

    code = fault.options.get("code")
    header = Text.assemble(
        "[ ",
        text(getattr(main, "__prog__", _program(fault.options)), "prog-name"),
        " | ",
        text(code.normalize() if isinstance(code, FaultCode) else "-", "code"),
        " | ",
        text(str(fault.options.get("title", "")).title(), title_style),
        " ]"
    )
    body = [text(fault.message, message_style)]
    if hint := fault.options.get("hint"):
        body.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))
    if isinstance(code, FaultCode) and (docs := getdoc(code)):
        body.append(text(docs, "docs"))

    if fancy:
        return Panel(Group(*body), title=header, title_align="left")
    return Group(header, *body)


class CommandException(Exception):
    """
    base class for every error surfaced by commandant.

    options
    - read-only mapping merged from the class `defaults` (code, title, hint)
      and the keyword arguments given at construction; every option is also
      readable as an attribute (err.returncode, err.stderr, ...).
    - rendering options (console, fancy, colorful) are merged in by trigger().
    """
    defaults = {"title": "command error"}

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | UnsetType)
        options = type(self).defaults | options
        self.message = coalesce(message, options["title"])
        self.options = MappingProxyType(options)
        super().__init__(self.message)

    def __getattr__(self, name):
        if name.startswith("__") or name == "options":
            raise AttributeError(name)
        try:
            return self.options[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}") from None

    def __str__(self):
        return self.message

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
            "docs": "#6B6F7A",
        }, "error-title", "error-message")

    def __trigger__(self) -> None:
        if not self.options.get("console"):
            raise self from self.options.get("cause")
        console.print(self)
        status = self.options.get("returncode", 1)
        sys.exit(status if isinstance(status, int) and status > 0 else 1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class TemplateError(CommandException):
    defaults = {"title": "template error"}


class PlaceholderCountError(TemplateError, IndexError):
    defaults = {
        "code": FaultCode.PLACEHOLDER_MISMATCH,
        "title": "missing argument",
        "hint": "pass one argument for every %s placeholder",
    }


class UnusedArgumentsError(TemplateError):
    defaults = {
        "code": FaultCode.UNUSED_ARGUMENTS,
        "title": "unused arguments",
        "hint": "drop the extra arguments or add %s placeholders for them",
    }


class UnbalancedQuoteError(TemplateError):
    defaults = {
        "code": FaultCode.UNBALANCED_QUOTE,
        "title": "unbalanced quote",
        "hint": "close every quote opened in the template",
    }


class ConfigurationError(CommandException):
    defaults = {"title": "configuration error"}


class StreamAlreadyBoundError(ConfigurationError):
    defaults = {
        "code": FaultCode.STREAM_ALREADY_BOUND,
        "title": "stream already bound",
        "hint": "use run() when the streams are bound by the caller",
    }


class UnknownUserError(ConfigurationError):
    defaults = {
        "code": FaultCode.UNKNOWN_USER,
        "title": "unknown user",
        "hint": "check the account name against the system user database",
    }


class UnsupportedPlatformError(ConfigurationError):
    defaults = {
        "code": FaultCode.UNSUPPORTED_PLATFORM,
        "title": "unsupported platform",
    }


class AlreadyStartedError(ConfigurationError):
    defaults = {
        "code": FaultCode.ALREADY_STARTED,
        "title": "already started",
        "hint": "build a new process for every run",
    }


class ExecutionError(CommandException):
    defaults = {"title": "execution error"}


class StartFailedError(ExecutionError):
    defaults = {
        "code": FaultCode.START_FAILED,
        "title": "start failed",
    }


class CancelledStartError(ExecutionError):
    defaults = {
        "code": FaultCode.CANCELLED_START,
        "title": "cancelled before start",
    }


class ExitStatusError(ExecutionError):
    defaults = {
        "code": FaultCode.EXIT_STATUS,
        "title": "exit status",
        "stdout": None,
        "stderr": None,
    }


class KilledError(ExecutionError):
    defaults = {
        "code": FaultCode.KILLED,
        "title": "killed",
        "stdout": None,
        "stderr": None,
    }


class CommandWarning(Warning):
    """
    base class for non-fatal faults; same options/rendering contract as CommandException.
    """
    defaults = {"title": "command warning"}

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | UnsetType)
        options = type(self).defaults | options
        self.message = coalesce(message, options["title"])
        self.options = MappingProxyType(options)
        super().__init__(self.message)

    def __getattr__(self, name):
        if name.startswith("__") or name == "options":
            raise AttributeError(name)
        try:
            return self.options[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}") from None

    def __str__(self):
        return self.message

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #FFB400",  # amber fault code for warnings
            "warning-title": "bold #FFC2E0",  # softer pinky title for warnings

            # body
            "warning-message": "#D6D6DE",  # slightly lighter gray body
            "hint-arrow": "#B8EFAF dim",  # softer green arrow
            "hint": "italic #B8EFAF",  # softer green hint text
            "docs": "#6B6F7A",
        }, "warning-title", "warning-message")

    def __trigger__(self) -> None:
        if not self.options.get("console"):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class KillFailedWarning(CommandWarning):
    defaults = {
        "code": FaultCode.KILL_FAILED,
        "title": "kill failed",
        "hint": "the process group may have exited already",
    }


class CommandExit(ExceptionGroup[CommandException]):
    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "deferred faults", tuple(exceptions))

    def __init__(self, exceptions, **options):
        super().__init__("deferred faults", tuple(exceptions))
        self.options = MappingProxyType(options)

    def __rich__(self):
        main = __import__("__main__")
        styles = defaultdict(str, {
            "prog-name": "bold #E6E6F0",  # near-white program name
            "title": "bold #FF4DA6",  # friendly pinky group title
        } | getattr(main, "__styles__", {}))
        colorful = self.options.get("colorful", False)

        def text(fragment, style=""):
            return Text(str(fragment), styles[style] if colorful else "")

        prog = text(getattr(main, "__prog__", _program(self.options)), "prog-name")
        header = Text.assemble("[ ", prog, " | ", text(self.message.title(), "title"), " ]")
        renders = [exception.__replace__(colorful=colorful, fancy=False) for exception in self.exceptions]
        if self.options.get("fancy"):
            return Panel(Group(*renders), title=header, title_align="left")
        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("console"):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in console mode, rendering happens via the rich console; otherwise exceptions
      are raised and warnings are emitted through the warnings module.

    typical options
    - console, fancy, colorful, and any context the renderer may want to show
      (e.g., argv, returncode, stream, user).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings; when
    not found, returns None (renderers treat docs as optional).
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "CommandException",
    "TemplateError",
    "PlaceholderCountError",
    "UnusedArgumentsError",
    "UnbalancedQuoteError",
    "ConfigurationError",
    "StreamAlreadyBoundError",
    "UnknownUserError",
    "UnsupportedPlatformError",
    "AlreadyStartedError",
    "ExecutionError",
    "StartFailedError",
    "CancelledStartError",
    "ExitStatusError",
    "KilledError",
    "CommandWarning",
    "KillFailedWarning",
    "CommandExit",
    "FaultCode",
    "trigger",
    "getdoc",
)
