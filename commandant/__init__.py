__path__ = __import__("pkgutil").extend_path(__path__, __name__)  # NOQA: F-821
__title__ = 'commandant'
__author__ = 'Seralix Source'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from .cancellation import *
from .capture import *
from .escaping import *
from .faults import *
from .privileges import *
from .process import *
from .templates import *
from .tokens import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__path__",
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the cancellation signals
__all__ += cancellation.__all__  # type: ignore[attr-defined]
# Load the exposed API of the stderr capture
__all__ += capture.__all__  # type: ignore[attr-defined]
# Load the exposed API of the escaper
__all__ += escaping.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the privileges
__all__ += privileges.__all__  # type: ignore[attr-defined]
# Load the exposed API of the processes
__all__ += __import__(f"{__name__}.process", fromlist=["__all__"]).__all__  # the process() factory shadows the submodule
# Load the exposed API of the templates
__all__ += templates.__all__  # type: ignore[attr-defined]
# Load the exposed API of the tokenizer
__all__ += tokens.__all__  # type: ignore[attr-defined]
