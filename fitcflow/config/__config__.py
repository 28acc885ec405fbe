# Copyright 2019-2020 The GPflow Contributors. All Rights Reserved.
# Copyright 2023 The fitcflow Contributors. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Global fitcflow settings.

========================  ======================================  ===================
setting                   environment variable                    default
========================  ======================================  ===================
float type                ``FITCFLOW_FLOAT``                      ``float64``
positive bijector         ``FITCFLOW_POSITIVE_BIJECTOR``          ``softplus``
positive lower bound      ``FITCFLOW_POSITIVE_MINIMUM``           ``0.0``
summary table format      ``FITCFLOW_SUMMARY_FMT``                ``fancy_grid``
initial inducing noise    ``FITCFLOW_INDUCING_NOISE``             ``1e-10``
========================  ======================================  ===================

Environment variables are read whenever a :class:`Config` is created without
an explicit value, so they must be set before fitcflow is imported to affect
the global configuration. The summary format accepts anything :mod:`tabulate`
knows plus "notebook".

Use :func:`as_context` to change settings for a block of code only:

>>> with as_context(Config(inducing_noise=1e-6)):
>>>     ...  # code here sees the new configuration
"""

import contextlib
import os
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Generator, List, Mapping, Optional, TypeVar, Union

import numpy as np
import tabulate
import tensorflow as tf
import tensorflow_probability as tfp

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

__config: Optional["Config"] = None

_ENV_PREFIX = "FITCFLOW_"
_FLOAT_TYPES: Mapping[str, type] = {
    "float16": np.float16,
    "float32": np.float32,
    "float64": np.float64,
}

_T = TypeVar("_T")


def _from_env(setting: str, default: _T, parse: Callable[[str], _T]) -> Callable[[], _T]:
    """
    A `default_factory` that parses ``FITCFLOW_<SETTING>`` when it is set.
    `parse` raises :class:`TypeError` for values it does not understand.
    """

    def factory() -> _T:
        raw = os.getenv(_ENV_PREFIX + setting.upper())
        return default if raw is None else parse(raw)

    return factory


def _lookup(options: Mapping[str, type], what: str) -> Callable[[str], type]:
    def parse(raw: str) -> type:
        if raw not in options:
            raise TypeError(f"Config cannot recognize {what} type.")
        return options[raw]

    return parse


def _to_float(what: str) -> Callable[[str], float]:
    def parse(raw: str) -> float:
        try:
            return float(raw)
        except ValueError:
            raise TypeError(f"Config cannot set the {what} value with non float type.")

    return parse


def _to_bijector_name(raw: str) -> str:
    if raw not in positive_bijector_type_map():
        raise TypeError(
            "Config cannot set the passed value as a default positive bijector. "
            f"Available options: {set(positive_bijector_type_map())}"
        )
    return raw


# `float` is shadowed by a field of `Config`.
Float = Union[float]


@dataclass(frozen=True)
class Config:
    """
    Immutable set of global fitcflow settings. Fields left out are taken from
    the environment, or from the defaults listed in the module docstring.
    """

    float: type = field(
        default_factory=_from_env("float", np.float64, _lookup(_FLOAT_TYPES, "float"))
    )
    """Float data type, float32 or float64."""

    positive_bijector: str = field(
        default_factory=_from_env("positive_bijector", "softplus", _to_bijector_name)
    )
    """Positive bijector, "softplus" or "exp"."""

    positive_minimum: Float = field(
        default_factory=_from_env("positive_minimum", 0.0, _to_float("positive_minimum"))
    )
    """Lower bound of positive parameters."""

    summary_fmt: Optional[str] = field(
        default_factory=_from_env("summary_fmt", "fancy_grid", lambda raw: raw)
    )
    """Table format used when printing modules."""

    inducing_noise: Float = field(
        default_factory=_from_env("inducing_noise", 1e-10, _to_float("inducing_noise"))
    )
    """
    Noise added to the diagonal of the inducing covariance before it is
    factorized. FITC inference stores its logarithm as `log_inducing_noise`.
    """


def config() -> Config:
    """Returns the active configuration."""
    assert __config is not None, "__config is None. This should never happen."
    return __config


def set_config(new_config: Config) -> None:
    """Makes `new_config` the active configuration."""
    global __config
    __config = new_config


def _update(**changes: Any) -> None:
    set_config(replace(config(), **changes))


def default_float() -> type:
    return config().float


def default_positive_bijector() -> str:
    """Name of the bijector behind positive constraints: "exp" or "softplus"."""
    return config().positive_bijector


def default_positive_minimum() -> float:
    return config().positive_minimum


def default_summary_fmt() -> Optional[str]:
    return config().summary_fmt


def default_inducing_noise() -> float:
    """Initial inducing noise of newly created inference methods."""
    return config().inducing_noise


def _numpy_dtype(value_type: type, accept: Callable[[tf.DType], bool], kind: str) -> type:
    try:
        tf_dtype = tf.as_dtype(value_type)
    except TypeError:
        raise TypeError(f"{value_type} is not a valid tf or np dtype")
    if not accept(tf_dtype):
        raise TypeError(f"{value_type} is not {kind} dtype")
    numpy_dtype: type = tf_dtype.as_numpy_dtype
    return numpy_dtype


def set_default_float(value_type: type) -> None:
    """Sets the float type, e.g. ``np.float64`` or ``tf.float32``."""
    _update(float=_numpy_dtype(value_type, lambda d: d.is_floating, "a float"))


def _check_float_scalar(value: Any) -> None:
    if isinstance(value, (tf.Tensor, np.ndarray)):
        is_scalar = len(value.shape) == 0
    else:
        is_scalar = isinstance(value, float)
    if not is_scalar:
        raise TypeError("Expected float32 or float64 scalar value")


def set_default_positive_bijector(value: str) -> None:
    """Sets the positive bijector, "exp" or "softplus" (case-insensitive)."""
    type_map = positive_bijector_type_map()
    if isinstance(value, str):
        value = value.lower()
    if value not in type_map:
        raise ValueError(f"`{value}` not in set of valid bijectors: {sorted(type_map)}")
    _update(positive_bijector=value)


def set_default_positive_minimum(value: float) -> None:
    _check_float_scalar(value)
    if value < 0:
        raise ValueError("Positive minimum must be non-negative")
    _update(positive_minimum=value)


def set_default_inducing_noise(value: float) -> None:
    """
    Sets the initial inducing noise of newly created inference methods. It
    has to be strictly positive since inference methods store its logarithm.
    """
    _check_float_scalar(value)
    if value <= 0:
        raise ValueError("Inducing noise must be positive")
    _update(inducing_noise=value)


def set_default_summary_fmt(value: Optional[str]) -> None:
    known: List[Optional[str]] = [*tabulate.tabulate_formats, "notebook", None]
    if value not in known:
        raise ValueError(f"Summary does not support '{value}' format")
    _update(summary_fmt=value)


def positive_bijector_type_map() -> Dict[str, type]:
    return {"exp": tfp.bijectors.Exp, "softplus": tfp.bijectors.Softplus}


@contextlib.contextmanager
def as_context(temporary_config: Optional[Config] = None) -> Generator[None, None, None]:
    """
    Runs the body of the `with` statement under `temporary_config` (a copy of
    the active configuration when omitted) and restores the previous one on
    exit, even when an exception is raised.
    """
    previous = config()
    set_config(replace(previous) if temporary_config is None else temporary_config)
    try:
        yield
    finally:
        set_config(previous)


set_config(Config())
