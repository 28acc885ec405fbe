# Copyright 2017-2020 The GPflow Contributors. All Rights Reserved.
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
Core building blocks: :class:`Module`, the base of every kernel, likelihood,
mean function and inference method, and :class:`Parameter`, a variable with
an optional constraining transform.
"""

from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Tuple, Union

import numpy as np
import tensorflow as tf
import tensorflow_probability as tfp
from typing_extensions import Final

from .config import default_float, default_summary_fmt

if TYPE_CHECKING:  # pragma: no cover
    from IPython.lib import pretty

DType = Union[np.dtype, tf.DType]
AnyNDArray = Union[np.ndarray]
Transform = Union[tfp.bijectors.Bijector]

TensorLike: Final[Tuple[type, ...]] = (object,)
"""
Types to register with a `multipledispatch` dispatcher wherever a tensor is
accepted; the dispatcher cannot handle the :data:`TensorType` union.
"""

MeanAndVariance = Tuple[tf.Tensor, tf.Tensor]


class Module(tf.Module):
    """
    A `tf.Module` that knows which of its variables are :class:`Parameter`\\ s
    and prints them as a table in IPython.
    """

    @property
    def parameters(self) -> Tuple["Parameter", ...]:
        return tuple(self._flatten(predicate=lambda v: isinstance(v, Parameter)))

    @property
    def trainable_parameters(self) -> Tuple["Parameter", ...]:
        return tuple(p for p in self.parameters if p.trainable)

    def _summary(self, title: str, tablefmt: Optional[str]) -> str:
        from .utilities import leaf_components, tabulate_module_summary

        if not leaf_components(self):
            return title
        return f"{title}\n{tabulate_module_summary(self, tablefmt=tablefmt)}"

    def _repr_html_(self) -> str:
        from html import escape

        return self._summary(escape(repr(self)), "html")

    def _repr_pretty_(self, p: "pretty.RepresentationPrinter", cycle: bool) -> None:
        p.text(self._summary(repr(self), default_summary_fmt()))


def _to_tensor(value: "TensorData", dtype: Optional[DType] = None) -> tf.Tensor:
    dtype = default_float() if dtype is None else dtype
    if tf.is_tensor(value):
        return tf.cast(value, dtype)
    return tf.convert_to_tensor(value, dtype=dtype)


def _unconstrain(
    value: "TensorData", transform: Optional[Transform], dtype: Optional[DType]
) -> tf.Tensor:
    """ Maps a constrained value to the unconstrained space, failing on NaN or Inf. """
    value = _to_tensor(value, dtype)
    unconstrained = value if transform is None else transform.inverse(value)
    if unconstrained.dtype.is_integer:
        return unconstrained
    return tf.debugging.assert_all_finite(
        unconstrained,
        message=(
            "fitcflow.Parameter: value is outside the range of the parameter's transform "
            "(its unconstrained value is NaN or Inf) and cannot be assigned."
        ),
    )


class Parameter(tfp.util.TransformedVariable):
    """
    A variable seen through a bijector: the optimizer moves the unconstrained
    variable while reading the parameter gives the constrained value. Without
    a transform the two coincide.

    Derivatives returned by the inference methods are taken with respect to
    the unconstrained variable. Log-scale hyperparameters such as
    ``log_sigma`` and ``log_scale`` are stored without a transform, so their
    unconstrained value is the logarithm itself.
    """

    def __init__(
        self,
        value: "TensorData",
        *,
        transform: Optional[Transform] = None,
        trainable: Optional[bool] = None,
        dtype: Optional[DType] = None,
        name: Optional[str] = None,
    ):
        if isinstance(value, Parameter):
            # Copy construction inherits whatever is not given explicitly.
            transform = value.transform if transform is None else transform
            trainable = value.trainable if trainable is None else trainable
            name = name or value.bijector.name
            initial = _to_tensor(value, dtype) if dtype else value
        else:
            if transform is None:
                transform = tfp.bijectors.Identity()
            else:
                name = name or transform.name
            trainable = True if trainable is None else trainable
            initial = _to_tensor(value, dtype)

        _unconstrain(initial, transform, dtype)
        super().__init__(initial, transform, dtype=initial.dtype, trainable=trainable, name=name)

    @property
    def unconstrained_variable(self) -> tf.Variable:
        return self._pretransformed_input

    @property
    def transform(self) -> Optional[Transform]:
        return self.bijector

    @property
    def trainable(self) -> bool:
        """ Read-only; change it with :func:`fitcflow.set_trainable`. """
        return bool(self.unconstrained_variable.trainable)

    def assign(
        self,
        value: "TensorData",
        use_locking: bool = False,
        name: Optional[str] = None,
        read_value: bool = True,
    ) -> tf.Tensor:
        """
        Sets the constrained value, e.g. ``Parameter(2.0, transform=positive()).assign(4.0)``.
        """
        return self.unconstrained_variable.assign(
            _unconstrain(value, self.transform, self.dtype),
            use_locking=use_locking,
            name=name,
            read_value=read_value,
        )


TensorType = Union[AnyNDArray, tf.Tensor, tf.Variable, Parameter]
"""
Anything most TensorFlow and fitcflow operations accept as a tensor. Register
dispatcher implementations with :data:`TensorLike` instead.
"""

TensorData = Union[int, float, Sequence[Any], TensorType]
InputData = Union[TensorType]
OutputData = Union[TensorType]
RegressionData = Tuple[InputData, Any]


def unconstrained_variable(parameter: Union[Parameter, tf.Variable]) -> tf.Variable:
    """
    The variable an optimizer moves for `parameter`: the unconstrained
    variable of a :class:`Parameter`, or a plain variable itself.
    """
    if isinstance(parameter, Parameter):
        return parameter.unconstrained_variable
    if isinstance(parameter, tf.Variable):
        return parameter
    raise TypeError(f"Expected a Parameter or tf.Variable, got {type(parameter).__name__}")


__all__: List[str] = [
    "AnyNDArray",
    "InputData",
    "MeanAndVariance",
    "Module",
    "OutputData",
    "Parameter",
    "RegressionData",
    "TensorData",
    "TensorLike",
    "TensorType",
    "unconstrained_variable",
]
