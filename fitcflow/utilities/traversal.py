# Copyright 2017-2021 The GPflow Contributors. All Rights Reserved.
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
Walking a module tree to find its parameters and variables.

Every leaf is addressed by its attribute path, e.g. ``".kernel.lengthscales"``
or ``".items[0]"``. These paths are the keys of
:meth:`~fitcflow.inference.InferenceMethod.get_negative_log_marginal_likelihood_derivatives`.
"""

from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple, Type, TypeVar, Union

import numpy as np
import tensorflow as tf
import tensorflow_probability as tfp
from tabulate import tabulate

from ..base import AnyNDArray, Parameter
from ..config import default_summary_fmt

__all__ = [
    "leaf_components",
    "multiple_assign",
    "parameter_dict",
    "print_summary",
    "read_values",
    "tabulate_module_summary",
    "traverse_module",
]

LeafVariable = Union[tf.Variable, Parameter]
TraverseInput = TypeVar("TraverseInput", tf.Variable, tf.Module, Parameter)
State = TypeVar("State")
Path = str
Accumulator = Tuple[Path, State]
TraverseUpdateCallable = Callable[[TraverseInput, Path, State], State]


def _children(node: Any, path: Path) -> Iterator[Tuple[Path, Any]]:
    if isinstance(node, (list, tuple)):
        yield from ((f"{path}[{i}]", child) for i, child in enumerate(node))
    elif isinstance(node, dict):
        yield from ((f"{path}['{key}']", child) for key, child in node.items())
    elif isinstance(node, tf.Module):
        skip = node._TF_MODULE_IGNORED_PROPERTIES
        if isinstance(node, tfp.bijectors.Bijector):
            # `_parameters` of a bijector refers back to the bijector itself.
            skip = skip | {"_parameters"}
        yield from ((f"{path}.{name}", v) for name, v in vars(node).items() if name not in skip)


def traverse_module(
    m: TraverseInput,
    acc: Accumulator[State],
    update_cb: TraverseUpdateCallable[TraverseInput, State],
    target_types: Tuple[Type[Any], ...],
) -> State:
    """
    Depth-first walk over `m`. Each object of one of `target_types` is passed
    to `update_cb` together with its path and the running state; whatever
    `update_cb` returns becomes the new state. Lists, tuples, dicts and
    modules are descended into, anything else is ignored.

    :param acc: the path of `m` and the initial state.
    :return: the final state.
    """
    path, state = acc
    if isinstance(m, target_types):
        return update_cb(m, path, state)
    for child_path, child in _children(m, path):
        state = traverse_module(child, (child_path, state), update_cb, target_types)
    return state


def leaf_components(input_module: tf.Module) -> Dict[Path, LeafVariable]:
    """
    Every :class:`~fitcflow.Parameter` and `tf.Variable` under `input_module`.
    Paths are prefixed with the class name of `input_module`.
    """

    def collect(
        leaf: LeafVariable, path: Path, found: Dict[Path, LeafVariable]
    ) -> Dict[Path, LeafVariable]:
        found[path] = leaf
        return found

    root = (type(input_module).__name__, {})
    return traverse_module(input_module, root, collect, (Parameter, tf.Variable))


def parameter_dict(module: tf.Module) -> Dict[Path, LeafVariable]:
    """
    Like :func:`leaf_components`, but with paths relative to `module`::

        parameter_dict(FITCInferenceMethod(data, SquaredExponential(), Z))
        # {".kernel.variance": ..., ".kernel.lengthscales": ..., ".likelihood.log_sigma": ...}
    """
    return {"." + path.partition(".")[2]: leaf for path, leaf in leaf_components(module).items()}


def read_values(module: tf.Module) -> Dict[Path, AnyNDArray]:
    """ Current values of every leaf of `module`, keyed as in :func:`parameter_dict`. """
    return {path: leaf.numpy() for path, leaf in parameter_dict(module).items()}


def multiple_assign(module: tf.Module, parameters: Mapping[Path, tf.Tensor]) -> None:
    """
    Assigns several leaves at once; keys are :func:`parameter_dict` paths.
    """
    leaves = parameter_dict(module)
    for path, value in parameters.items():
        leaves[path].assign(value)


def _transform_name(leaf: LeafVariable) -> Optional[str]:
    transform = getattr(leaf, "transform", None)
    if transform is None:
        return None
    if isinstance(transform, tfp.bijectors.Chain):
        # listed in the order they are applied
        return " + ".join(type(b).__name__ for b in reversed(transform.bijectors))
    return type(transform).__name__


def _format_value(value: AnyNDArray) -> str:
    value = np.around(value, 5)
    if value.size <= 3:
        return str(value)
    leading = ", ".join(map(str, value.ravel()[:3]))
    return "[" * value.ndim + leading + "..."


def tabulate_module_summary(module: tf.Module, tablefmt: Optional[str] = None) -> str:
    headers = ["name", "class", "transform", "trainable", "shape", "dtype", "value"]
    rows = [
        [
            path,
            type(leaf).__name__,
            _transform_name(leaf),
            leaf.trainable,
            leaf.shape,
            leaf.dtype.name,
            _format_value(leaf.numpy()),
        ]
        for path, leaf in leaf_components(module).items()
    ]
    return tabulate(rows, headers=headers, tablefmt=tablefmt)  # type: ignore[arg-type]


def print_summary(module: tf.Module, fmt: Optional[str] = None) -> None:
    """
    Prints the :func:`tabulate_module_summary` table of `module`. The
    "notebook" format renders it as HTML in IPython.
    """
    if fmt is None:
        fmt = default_summary_fmt()
    if fmt != "notebook":
        print(tabulate_module_summary(module, fmt))
        return

    from IPython.core.display import HTML, display

    display(HTML(tabulate_module_summary(module, "html")))
