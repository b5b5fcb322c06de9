"""Public :mod:`namescope` API."""

from . import constants as _constants
from . import runtime as _runtime
from . import outline as _outline
from .constants import *  # noqa: F401,F403
from .runtime import *  # noqa: F401,F403
from .outline import *  # noqa: F401,F403

__all__ = []
__all__ += getattr(_constants, "__all__", [])
__all__ += getattr(_runtime, "__all__", [])
__all__ += getattr(_outline, "__all__", [])
