"""
Commandant process (safe templating plus lifecycle supervision)

Scope
- Process wraps one external program invocation: the argument vector is built
  from a template and escaped arguments, then configured through a chain of
  calls and run exactly once.
- The supervisor ties the child to cancellation signals and deadlines, kills its
  whole process group when one of them fires, and runs exit hooks exactly once.

Overview
- Construction
  • Process(argv, *args) / process(...) expand an argument-vector template.
  • sh(template, *args) and bash(template, *args) wrap a single shell command
    line as [shell, "-c", expanded].
  • Template errors are caller errors and are raised right away.

- Configuration (chainable, every call returns the process)
  • env, cwd, stdin, stdout, stderr: environment, directory and streams.
  • shell(program): replace the interpreter (argv[0]).
  • as_user(name) / elevate(): run as another account, or behind sudo.
  • on_start(*hooks) / on_exit(*hooks): lifecycle hooks, called with the process.
  • context(cancellation) / timeout(seconds): stop conditions.
  Configuration faults (unknown user, ...) are recorded and surfaced by the
  terminal operation, never from the middle of a chain.

- Terminal operations (one per process)
  • run(): start, wait and clean up; standard streams go where they were bound
    (the null device when unbound).
  • output(): capture standard output; standard error is kept in a bounded
    buffer when unbound and attached to the raised fault.
  • combined_output(): capture both streams in one buffer.

Lifecycle
    PENDING -> RUNNING -> EXITED | KILLED
    PENDING -> FAILED   (could not start, or cancelled before start)

Cleanup
- Exit hooks run once, in registration order, under the process lock. The first
  hook is built in: when the process's own cancellation fired and the child has
  not been reaped, it sends SIGKILL to the child's process group.
- The process's own cancellation is fired after the hooks, so hooks can tell a
  normal exit (not cancelled yet) from an interrupted one.
- Whichever of the foreground call and the watchers gets there first runs the
  hooks; the others find an empty list. The foreground call never returns before
  cleanup completed.

Example
    >>> sh("printf %s", "it's $HOME").output()
    b"it's /root"
"""
import codecs
import contextlib
import io
import os
import shutil
import signal
import subprocess
import threading
from collections.abc import Mapping
from enum import Enum

from .cancellation import Cancellation
from .capture import STDERR_BUDGET, BoundedCapture
from .faults import (
    AlreadyStartedError,
    CancelledStartError,
    CommandExit,
    ExitStatusError,
    KilledError,
    KillFailedWarning,
    StartFailedError,
    StreamAlreadyBoundError,
    TemplateError,
    UnknownUserError,
    UnsupportedPlatformError,
    trigger,
)
from .privileges import ELEVATION, elevation, lookup
from .templates import render
from .utils import Unset, rename

CHUNK = 64 << 10


class State(Enum):
    PENDING = "pending"
    RUNNING = "running"
    EXITED = "exited"
    KILLED = "killed"
    FAILED = "failed"


def _descriptor(stream):
    if isinstance(stream, int):
        return stream
    try:
        return stream.fileno()
    except (AttributeError, OSError, ValueError):
        return None


def _pump(pipe, sink):
    decoder = None
    if isinstance(sink, io.TextIOBase):
        decoder = codecs.getincrementaldecoder(getattr(sink, "encoding", None) or "utf-8")("replace")
    with pipe:
        while chunk := pipe.read1(CHUNK):
            sink.write(decoder.decode(chunk) if decoder else chunk)
    if decoder and (tail := decoder.decode(b"", final=True)):
        sink.write(tail)


def _feed(pipe, source):
    # the child may exit without reading its input
    with contextlib.suppress(BrokenPipeError), pipe:
        if isinstance(source, bytes | bytearray | memoryview | str):
            pipe.write(source.encode() if isinstance(source, str) else source)
            return
        while chunk := source.read(CHUNK):
            pipe.write(chunk.encode() if isinstance(chunk, str) else chunk)


class Process:
    """
    One external program invocation and its supervision.

    Parameters
    - argv: argument-vector template; every "%s" consumes the next of args.
    - args: arguments, escaped before they are spliced into argv.
    - console: print faults on stderr (rich) and exit instead of raising.
    - fancy / colorful: rendering of printed faults.
    """

    def __init__(self, argv, /, *args, console=False, fancy=False, colorful=False):
        self.console = console
        self.fancy = fancy
        self.colorful = colorful
        self._argv = []
        self._lock = threading.RLock()
        self._env = None
        self._cwd = None
        self._stdin = Unset
        self._stdout = Unset
        self._stderr = Unset
        self._shell = Unset
        self._elevation = ()
        self._user = None
        self._faults = []
        self._watchers = []
        self._on_start = []
        self._on_exit = [self._kill]
        self._popen = None
        self._pid = 0
        self._state = State.PENDING
        self._cancellation = Cancellation()
        try:
            self._argv = render(argv, *args)
        except TemplateError as error:
            self.trigger(error)
        if not self._argv:
            raise ValueError("Process() needs at least a program name")

    @property
    def args(self):
        argv = list(self._argv)
        if argv and self._shell is not Unset:
            argv[0] = self._shell
        return [*self._elevation, *argv]

    @property
    def pid(self):
        with self._lock:
            return self._pid

    @property
    def returncode(self):
        popen = self._popen
        return None if popen is None else popen.returncode

    @property
    def state(self):
        with self._lock:
            return self._state

    @property
    def cancellation(self):
        return self._cancellation

    def trigger(self, fault, /, **options):
        trigger(fault, **{
            "console": self.console,
            "fancy": self.fancy,
            "colorful": self.colorful,
            "argv": self.args or None,
        } | options)

    # --- configuration ---

    def env(self, environment, /):
        """
        Replace the inherited environment; repeated calls extend the replacement.

        environment is a mapping or an iterable of "KEY=value" strings.
        """
        if isinstance(environment, Mapping):
            pairs = {str(key): str(value) for key, value in environment.items()}
        elif isinstance(environment, str | bytes):
            raise TypeError("env() argument must be a mapping or an iterable of 'KEY=value' strings")
        else:
            pairs = {}
            for entry in environment:
                key, separator, value = entry.partition("=")
                if not separator or not key:
                    raise ValueError(f"env() entry {entry!r} is not of the form 'KEY=value'")
                pairs[key] = value
        self._env = (self._env or {}) | pairs
        return self

    def cwd(self, path, /):
        self._cwd = os.fspath(path)
        return self

    def stdin(self, source, /):
        """
        Feed standard input from bytes/str, a readable object or a file descriptor.
        """
        if not (
            isinstance(source, bytes | bytearray | memoryview | str | int) or
            hasattr(source, "read") or
            hasattr(source, "fileno")
        ):
            raise TypeError("stdin() argument must be bytes, str, a readable object or a file descriptor")
        self._stdin = source
        return self

    def stdout(self, sink, /):
        self._stdout = self._sink(sink, "stdout")
        return self

    def stderr(self, sink, /):
        self._stderr = self._sink(sink, "stderr")
        return self

    @staticmethod
    def _sink(sink, name):
        if isinstance(sink, int) and sink < 0 and sink != subprocess.DEVNULL:
            raise ValueError(f"{name}() file descriptor must be non-negative")
        if not (sink is None or isinstance(sink, int) or hasattr(sink, "write") or hasattr(sink, "fileno")):
            raise TypeError(f"{name}() argument must be a writable object, a file descriptor or None")
        return sink

    def shell(self, program, /):
        if not isinstance(program, str) or not program:
            raise TypeError("shell() argument must be a non-empty string")
        self._shell = program
        return self

    def as_user(self, name, /):
        """
        Run the program as another account (drops privileges; needs root).

        The child's HOME points at the account's home directory. An unknown
        account or an unsupported platform is reported by the terminal operation.
        """
        try:
            self._user = lookup(name)
        except (UnknownUserError, UnsupportedPlatformError) as fault:
            self._faults.append(fault)
        return self

    def elevate(self, command=ELEVATION, /):
        self._elevation = elevation(command)
        return self

    def on_start(self, *hooks):
        for hook in hooks:
            if not callable(hook):
                raise TypeError("on_start() arguments must be callable")
        with self._lock:
            self._on_start.extend(hooks)
        return self

    def on_exit(self, *hooks):
        for hook in hooks:
            if not callable(hook):
                raise TypeError("on_exit() arguments must be callable")
        with self._lock:
            self._on_exit.extend(hooks)
        return self

    def context(self, cancellation, /):
        """
        Stop the process when cancellation fires.

        A watcher thread waits for either cancellation or the process's own
        signal; when cancellation fired first, the own signal is fired with the
        same reason and cleanup runs (killing the process group).
        """
        if not isinstance(cancellation, Cancellation):
            raise TypeError("context() argument must be a Cancellation")
        if cancellation.cancelled:
            self._cancellation.cancel(cancellation.reason)
        watcher = threading.Thread(
            target=self._watch,
            args=(cancellation,),
            name=f"commandant-watch-{len(self._watchers)}",
            daemon=True
        )
        with self._lock:
            self._watchers.append(watcher)
        watcher.start()
        return self

    def timeout(self, seconds, /):
        deadline = self._cancellation.derive(timeout=seconds)

        @rename("release")
        def release(process):
            deadline.cancel()

        self.on_exit(release)
        return self.context(deadline)

    # --- terminal operations ---

    def run(self):
        try:
            self._preflight()
            if fault := self._execute(self._stdout, self._stderr):
                self.trigger(fault)
        finally:
            self._cleanup()

    def output(self):
        try:
            self._preflight(*self._bound("stdout"))
            stdout = io.BytesIO()
            stderr = BoundedCapture(STDERR_BUDGET) if self._stderr is Unset else self._stderr
            if fault := self._execute(stdout, stderr):
                if isinstance(fault, ExitStatusError | KilledError):
                    fault = fault.__replace__(
                        stdout=stdout.getvalue(),
                        stderr=bytes(stderr) if isinstance(stderr, BoundedCapture) else None
                    )
                self.trigger(fault)
            return stdout.getvalue()
        finally:
            self._cleanup()

    def combined_output(self):
        try:
            self._preflight(*self._bound("stdout", "stderr"))
            buffer = io.BytesIO()
            if fault := self._execute(buffer, buffer):
                if isinstance(fault, ExitStatusError | KilledError):
                    fault = fault.__replace__(stdout=buffer.getvalue())
                self.trigger(fault)
            return buffer.getvalue()
        finally:
            self._cleanup()

    # --- internals ---

    def _bound(self, *names):
        for name in names:
            if getattr(self, f"_{name}") is not Unset:
                yield StreamAlreadyBoundError(f"{name} already bound", stream=name)

    def _preflight(self, *faults):
        faults = [*self._faults, *faults]
        if faults:
            with self._lock:
                if self._state is State.PENDING:
                    self._state = State.FAILED
        if len(faults) == 1:
            self.trigger(faults[0])
        elif faults:
            self.trigger(CommandExit(faults))

    def _connect(self, stdout, stderr):
        options, pumps = {}, []

        source = self._stdin
        if source is Unset:
            options["stdin"] = subprocess.DEVNULL
        elif not isinstance(source, bytes | bytearray | memoryview | str) and (fd := _descriptor(source)) is not None:
            options["stdin"] = fd
        else:
            options["stdin"] = subprocess.PIPE
            pumps.append(lambda popen: (_feed, popen.stdin, source))

        for name, sink in (("stdout", stdout), ("stderr", stderr)):
            if sink is Unset or sink is None:
                options[name] = subprocess.DEVNULL
            elif name == "stderr" and sink is stdout:
                options[name] = subprocess.STDOUT
            elif (fd := _descriptor(sink)) is not None:
                if hasattr(sink, "flush"):
                    sink.flush()
                options[name] = fd
            else:
                options[name] = subprocess.PIPE
                pumps.append(lambda popen, name=name, sink=sink: (_pump, getattr(popen, name), sink))
        return options, pumps

    def _launch(self, options):
        argv = self.args
        if self._env is not None or self._user is not None:
            options["env"] = dict(os.environ if self._env is None else self._env)
        if self._user is not None:
            options["env"]["HOME"] = self._user.home
            options |= {"user": self._user.uid, "group": self._user.gid, "extra_groups": []}
        if self._cwd is not None:
            options["cwd"] = self._cwd
        if os.name == "posix":
            options["start_new_session"] = True
        if not os.path.dirname(argv[0]) and (executable := shutil.which(argv[0])):
            options["executable"] = executable
        return subprocess.Popen(argv, **options)

    def _execute(self, stdout, stderr):
        """
        Start the child, run the start hooks and wait; returns the execution
        fault to surface, if any.
        """
        with self._lock:
            if self._state is not State.PENDING:
                self.trigger(AlreadyStartedError(f"process already {self._state.value}", state=self._state))
            if self._cancellation.cancelled:
                self._state = State.FAILED
                reason = self._cancellation.reason
                self.trigger(CancelledStartError(f"cancelled before start: {reason.value}", reason=reason))
            options, pumps = self._connect(stdout, stderr)
            try:
                popen = self._launch(options)
            except OSError as error:
                self._state = State.FAILED
                return StartFailedError(f"{self.args[0]}: {error.strerror or error}", cause=error)
            self._popen, self._pid, self._state = popen, popen.pid, State.RUNNING
            hooks = list(self._on_start)

        threads = []
        for pump in pumps:
            target, *arguments = pump(popen)
            threads.append(threading.Thread(target=target, args=arguments, name=f"commandant-pump-{popen.pid}", daemon=True))
            threads[-1].start()

        try:
            for hook in hooks:
                hook(self)
        except BaseException:
            self._cancellation.cancel()
            self._cleanup()
            raise
        finally:
            returncode = popen.wait()
            for thread in threads:
                thread.join()

        with self._lock:
            if returncode == 0:
                self._state = State.EXITED
                return None
            if returncode > 0:
                self._state = State.EXITED
                return ExitStatusError(f"exit status {returncode}", returncode=returncode)
            self._state = State.KILLED
            number = -returncode
            return KilledError(
                f"signal: {(signal.strsignal(number) or str(number)).lower()}",
                signal=number,
                returncode=returncode,
                reason=self._cancellation.reason
            )

    def _kill(self, process):
        popen = self._popen
        if not self._pid or popen is None or not self._cancellation.cancelled:
            return
        try:
            if hasattr(os, "killpg"):
                # the leader may be gone while its descendants still hold the group
                os.killpg(self._pid, signal.SIGKILL)
            elif popen.returncode is None:
                popen.kill()
        except ProcessLookupError:
            return
        except OSError as error:
            self.trigger(KillFailedWarning(f"kill: {error}", pid=self._pid, cause=error))

    def _watch(self, link):
        done = threading.Event()
        detach = (link.subscribe(done.set), self._cancellation.subscribe(done.set))
        done.wait()
        for unsubscribe in detach:
            unsubscribe()
        if link.cancelled:
            self._cancellation.cancel(link.reason)
        self._cleanup()

    def _cleanup(self):
        with self._lock:
            hooks, self._on_exit = self._on_exit, []
            try:
                for hook in hooks:
                    hook(self)
            finally:
                self._cancellation.cancel()

    def __rich_repr__(self):
        yield "args", self.args
        yield "state", self.state
        yield "pid", self.pid
        yield "returncode", self.returncode, None
        yield "cancellation", self._cancellation

    def __repr__(self):
        return f"{type(self).__name__}({", ".join(
            f"{name}={value!r}" for name, value, *_ in self.__rich_repr__()
        )})"


def process(argv, /, *args, **options):
    return Process(argv, *args, **options)


def sh(template, /, *args, **options):
    """
    Run one command line through sh -c, with args escaped into its %s placeholders.
    """
    return Process(["sh", "-c", template], *args, **options)


def bash(template, /, *args, **options):
    """
    Like sh(), through bash -c.
    """
    return Process(["bash", "-c", template], *args, **options)


__all__ = (
    "State",
    "Process",
    "process",
    "sh",
    "bash",
)
