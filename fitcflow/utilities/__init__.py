from . import ops
from .bijectors import *
from .misc import *
from .multipledispatch import Dispatcher
from .traversal import *

__all__ = [
    "Dispatcher",
    "leaf_components",
    "multiple_assign",
    "ops",
    "parameter_dict",
    "positive",
    "print_summary",
    "read_values",
    "set_trainable",
    "tabulate_module_summary",
    "to_default_float",
    "traverse_module",
]
