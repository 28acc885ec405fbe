# Copyright 2016-2020 The GPflow Contributors. All Rights Reserved.
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
The prior mean m(x) of the latent function. FITC inference subtracts it from
the labels before any solve and differentiates the marginal likelihood with
respect to its parameters.

Mean functions map inputs [N, D] to outputs [N, 1], one row per datum.
"""

from typing import Optional

import numpy as np
import tensorflow as tf
from check_shapes import check_shapes, inherit_check_shapes

from .base import Module, Parameter, TensorType
from .config import default_float


class MeanFunction(Module):
    """
    The base mean function class. Subclasses implement `__call__`, which
    takes inputs X and returns m(X), and may own parameters.
    """

    @check_shapes(
        "X: [batch..., D]",
        "return: [batch..., 1]",
    )
    def __call__(self, X: TensorType) -> tf.Tensor:
        raise NotImplementedError("Implement the __call__ method for this mean function")

    def __add__(self, other: "MeanFunction") -> "MeanFunction":
        return Additive(self, other)


class Linear(MeanFunction):
    """
    m(x) = xᵀA + b, with weights A of shape [D, 1] and offset b of shape [1].
    Both default to the identity map of a single input column.
    """

    def __init__(self, A: Optional[TensorType] = None, b: Optional[TensorType] = None) -> None:
        super().__init__()
        if A is None:
            A = np.ones((1, 1), dtype=default_float())
        if b is None:
            b = np.zeros(1, dtype=default_float())
        self.A = Parameter(np.atleast_2d(A))
        self.b = Parameter(b)

    @inherit_check_shapes
    def __call__(self, X: TensorType) -> tf.Tensor:
        return tf.tensordot(X, self.A, axes=1) + self.b


def _column_of(X: TensorType, value: TensorType, dtype: tf.DType) -> tf.Tensor:
    shape = tf.concat([tf.shape(X)[:-1], [1]], axis=0)
    return tf.fill(shape, tf.cast(value, dtype))


class Constant(MeanFunction):
    """
    m(x) = c for a trainable scalar c.
    """

    def __init__(self, c: Optional[TensorType] = None) -> None:
        super().__init__()
        self.c = Parameter(np.reshape(0.0 if c is None else c, [1]))

    @inherit_check_shapes
    def __call__(self, X: TensorType) -> tf.Tensor:
        return _column_of(X, tf.reshape(self.c, []), self.c.dtype)


class Zero(MeanFunction):
    """
    m(x) = 0, the default prior mean. It has no parameters.
    """

    @inherit_check_shapes
    def __call__(self, X: TensorType) -> tf.Tensor:
        return _column_of(X, 0.0, tf.as_dtype(X.dtype))


class Additive(MeanFunction):
    """ The sum of two mean functions, as built by `m1 + m2`. """

    def __init__(self, first_part: MeanFunction, second_part: MeanFunction) -> None:
        super().__init__()
        self.add_1 = first_part
        self.add_2 = second_part

    @inherit_check_shapes
    def __call__(self, X: TensorType) -> tf.Tensor:
        return self.add_1(X) + self.add_2(X)
