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

from typing import Any, Optional

import numpy as np
import tensorflow as tf
from check_shapes import check_shapes, inherit_check_shapes

from ..base import Parameter, TensorType
from ..utilities import positive
from ..utilities.ops import square_distance
from .base import Kernel


class Stationary(Kernel):
    """
    Kernels that only see the squared distance between lengthscale-scaled
    inputs, r² = ‖(x - x') / ℓ‖². Subclasses provide `K_r2`.

    Passing one lengthscale per active column turns on automatic relevance
    determination (ARD).
    """

    _ACCEPTED_KWARGS = frozenset({"name", "active_dims"})

    @check_shapes(
        "variance: []",
        "lengthscales: [broadcast n_active_dims]",
    )
    def __init__(
        self, variance: TensorType = 1.0, lengthscales: TensorType = 1.0, **kwargs: Any
    ) -> None:
        unknown = sorted(set(kwargs) - self._ACCEPTED_KWARGS)
        if unknown:
            raise TypeError(f"Unknown keyword argument: {', '.join(unknown)}")

        super().__init__(**kwargs)
        self.variance = Parameter(variance, transform=positive())
        self.lengthscales = Parameter(lengthscales, transform=positive())
        self._validate_ard_active_dims(self.lengthscales)

    @property
    def ard(self) -> bool:
        """ True when every active column has its own lengthscale. """
        return bool(self.lengthscales.shape.rank)

    def scale(self, X: Optional[TensorType]) -> Optional[TensorType]:
        if X is None:
            return None
        return X / self.lengthscales

    @inherit_check_shapes
    def K(self, X: TensorType, X2: Optional[TensorType] = None) -> tf.Tensor:
        return self.K_r2(square_distance(self.scale(X), self.scale(X2)))

    @inherit_check_shapes
    def K_diag(self, X: TensorType) -> tf.Tensor:
        # k(x, x) is the variance for every stationary kernel.
        return tf.ones(tf.shape(X)[:-1], dtype=X.dtype) * self.variance

    def K_r2(self, r2: TensorType) -> tf.Tensor:
        raise NotImplementedError


class SquaredExponential(Stationary):
    """
    k(r) = σ² exp(-r²/2), also known as the RBF kernel.
    """

    def K_r2(self, r2: TensorType) -> tf.Tensor:
        return self.variance * tf.exp(-r2 / 2)


class Matern52(Stationary):
    """
    k(r) = σ² (1 + √5 r + 5r²/3) exp(-√5 r)
    """

    def K_r2(self, r2: TensorType) -> tf.Tensor:
        # sqrt has an infinite gradient at zero
        sqrt5_r = np.sqrt(5.0) * tf.sqrt(tf.maximum(r2, 1e-36))
        return self.variance * (1.0 + sqrt5_r + tf.square(sqrt5_r) / 3.0) * tf.exp(-sqrt5_r)
