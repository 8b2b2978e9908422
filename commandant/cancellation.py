"""
Commandant cancellation (one-shot, thread-safe stop signals)

Scope
- A Cancellation is a flag that flips exactly once, remembers why it flipped and
  tells its subscribers about it.
- Signals form a tree: a derived signal fires with its parent, or on its own
  deadline, but never fires its parent.

Overview
- cancel(reason): flip the flag; later calls are no-ops, the first reason wins.
- subscribe(callback): run callback once the signal fires (immediately when it
  already has); returns a callable that removes the subscription.
- derive(timeout=None): new child signal, optionally with a deadline after which
  it fires with Reason.DEADLINE_EXCEEDED.
- wait(timeout=None): block until the signal fires or the wait times out.

Callbacks run on the thread that fired the signal (the deadline timer thread for
deadlines) and must not block.
"""
import itertools
import threading
from enum import Enum


class Reason(Enum):
    CANCELLED = "cancelled"
    DEADLINE_EXCEEDED = "deadline exceeded"


class Cancellation:
    def __init__(self, parent=None, /, *, timeout=None):
        if parent is not None and not isinstance(parent, Cancellation):
            raise TypeError("Cancellation() parent must be a Cancellation")
        if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout < 0):
            raise ValueError("Cancellation() timeout must be a non-negative number of seconds")
        self.parent = parent
        self.timeout = timeout
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason = None
        self._callbacks = {}
        self._keys = itertools.count()
        self._timer = None
        self._detach = None
        if parent is not None:
            self._detach = parent.subscribe(lambda: self.cancel(parent.reason))
        if timeout is not None and not self.cancelled:
            self._timer = threading.Timer(timeout, self.cancel, (Reason.DEADLINE_EXCEEDED,))
            self._timer.daemon = True
            self._timer.start()

    @property
    def cancelled(self):
        return self._event.is_set()

    @property
    def reason(self):
        return self._reason

    def cancel(self, reason=Reason.CANCELLED, /):
        """
        Fire the signal; returns False when it had already fired.
        """
        reason = Reason(reason)
        with self._lock:
            if self._event.is_set():
                return False
            self._reason = reason
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
        if self._timer is not None:
            self._timer.cancel()
        if self._detach is not None:
            self._detach()
        for callback in callbacks:
            callback()
        return True

    def subscribe(self, callback, /):
        if not callable(callback):
            raise TypeError("subscribe() argument must be callable")
        with self._lock:
            if not self._event.is_set():
                key = next(self._keys)
                self._callbacks[key] = callback

                def unsubscribe():
                    with self._lock:
                        self._callbacks.pop(key, None)

                return unsubscribe
        callback()
        return lambda: None

    def derive(self, *, timeout=None):
        return Cancellation(self, timeout=timeout)

    def wait(self, timeout=None):
        return self._event.wait(timeout)

    def __repr__(self):
        if self.cancelled:
            return f"<Cancellation {self._reason.value}>"
        return "<Cancellation pending>"


__all__ = (
    "Reason",
    "Cancellation",
)
