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

from typing import Iterable, Union

import tensorflow as tf
from check_shapes import check_shapes

from ..base import TensorData
from ..config import default_float

__all__ = [
    "set_trainable",
    "to_default_float",
]


@check_shapes(
    "x: [any...]",
    "return: [any...]",
)
def to_default_float(x: TensorData) -> tf.Tensor:
    """
    Converts `x` to the configured float type. Python and numpy values are
    converted directly, which keeps float64 precision for python floats.
    """
    if tf.is_tensor(x):
        return tf.cast(x, dtype=default_float())
    return tf.convert_to_tensor(x, dtype=default_float())


def set_trainable(model: Union[tf.Module, Iterable[tf.Module]], flag: bool) -> None:
    """
    Switches every variable of `model` (a module or an iterable of modules) to
    trainable or frozen. Frozen parameters get no entry in
    :meth:`~fitcflow.inference.InferenceMethod.get_negative_log_marginal_likelihood_derivatives`.
    """
    modules = (model,) if isinstance(model, tf.Module) else tuple(model)
    for variable in (v for module in modules for v in module.variables):
        variable._trainable = flag
