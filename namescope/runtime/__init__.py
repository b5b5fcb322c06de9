"""
namescope — short, collision-free output identifiers for nested scopes.

Input variables are declared in a tree of scopes. They:
  * may carry a given name, which can be looked up from any inner scope,
  * may be anonymous, possibly with a prefix, and are never looked up,
  * may shadow variables of enclosing scopes.

Each is assigned an output identifier for generated code. Outputs:
  * never shadow an identifier visible from an enclosing scope,
  * may repeat between sibling scopes,
  * are as short as the already-committed names allow,
  * resemble the input name when one is given.
"""

from . import errors as _errors
from . import core as _core
from . import candidates as _candidates
from . import tree as _tree
from . import allocator as _allocator
from . import namespace as _namespace
from . import analysis as _analysis
from . import report as _report
from .cli import build_config, configure_logging, main, parse_args
from ..constants import LOGBOOK_FILE, REPORT_FILE

from .errors import *
from .core import *
from .candidates import *
from .tree import *
from .allocator import *
from .namespace import *
from .analysis import *
from .report import *

__all__ = []
for module in (_errors, _core, _candidates, _tree, _allocator, _namespace, _analysis, _report):
    __all__.extend(getattr(module, '__all__', []))
__all__ += ['build_config', 'configure_logging', 'main', 'parse_args', 'LOGBOOK_FILE', 'REPORT_FILE']
__all__ = list(dict.fromkeys(__all__))
