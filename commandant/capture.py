"""
Bounded in-memory capture of a child's standard error.
"""
import threading

STDERR_BUDGET = 32 << 10


class BoundedCapture:
    """
    Thread-safe byte sink that keeps the first and the last `limit` bytes
    written to it and counts what it dropped in between.
    """

    def __init__(self, limit=STDERR_BUDGET):
        if not isinstance(limit, int) or limit < 0:
            raise ValueError("BoundedCapture() limit must be a non-negative integer")
        self.limit = limit
        self.skipped = 0
        self._written = 0
        self._prefix = bytearray()
        self._suffix = bytearray()
        self._lock = threading.Lock()

    def write(self, data, /):
        data = bytes(data)
        size = len(data)
        with self._lock:
            self._written += size
            if len(self._prefix) < self.limit:
                room = self.limit - len(self._prefix)
                self._prefix += data[:room]
                data = data[room:]
            if not data:
                return size
            if len(data) >= self.limit:
                self.skipped += len(self._suffix) + len(data) - self.limit
                self._suffix = bytearray(data[len(data) - self.limit:])
                return size
            overflow = len(self._suffix) + len(data) - self.limit
            if overflow > 0:
                del self._suffix[:overflow]
                self.skipped += overflow
            self._suffix += data
        return size

    def writable(self):
        return True

    def flush(self):
        pass

    def getvalue(self):
        with self._lock:
            if self.skipped:
                return bytes(self._prefix) + b"\n... omitting %d bytes ...\n" % self.skipped + bytes(self._suffix)
            return bytes(self._prefix + self._suffix)

    def __bytes__(self):
        return self.getvalue()

    def __len__(self):
        return self._written

    def __repr__(self):
        return f"<BoundedCapture limit={self.limit} written={self._written} skipped={self.skipped}>"


__all__ = (
    "STDERR_BUDGET",
    "BoundedCapture",
)
