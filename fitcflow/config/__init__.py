from .__config__ import *
from .__config__ import __doc__  # needs explicit import

__all__ = [
    "Config",
    "as_context",
    "config",
    "default_float",
    "default_inducing_noise",
    "default_positive_bijector",
    "default_positive_minimum",
    "default_summary_fmt",
    "positive_bijector_type_map",
    "set_config",
    "set_default_float",
    "set_default_inducing_noise",
    "set_default_positive_bijector",
    "set_default_positive_minimum",
    "set_default_summary_fmt",
]
