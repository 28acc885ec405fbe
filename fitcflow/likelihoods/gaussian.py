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

from typing import Any, Tuple

import numpy as np
import tensorflow as tf
from check_shapes import check_shapes

from ..base import Parameter, TensorType
from .base import Likelihood, LikelihoodType


class Gaussian(Likelihood):
    r"""
    The Gaussian likelihood, y = f + ε with ε ~ N(0, σ²).

    The noise standard deviation is stored through its logarithm, `log_sigma`,
    so any real value is valid and the derivative an inference method returns
    for it is d/d(log σ).
    """

    likelihood_type = LikelihoodType.GAUSSIAN

    def __init__(self, sigma: TensorType = 1.0, **kwargs: Any) -> None:
        """
        :param sigma: The noise standard deviation, must be positive.
        """
        super().__init__(**kwargs)
        sigma = np.asarray(sigma)
        if not np.all(sigma > 0):
            raise ValueError(f"Gaussian likelihood needs a positive sigma, got {sigma}")
        self.log_sigma = Parameter(np.log(sigma), name="log_sigma")

    @property
    def parameter_names(self) -> Tuple[str, ...]:
        return ("log_sigma",)

    @property  # type: ignore[misc]  # mypy doesn't like decorated properties.
    @check_shapes(
        "return: []",
    )
    def sigma(self) -> tf.Tensor:
        return tf.exp(self.log_sigma)

    @property  # type: ignore[misc]  # mypy doesn't like decorated properties.
    @check_shapes(
        "return: []",
    )
    def variance(self) -> tf.Tensor:
        return tf.exp(2.0 * self.log_sigma)

    def set_sigma(self, sigma: TensorType) -> None:
        if not np.all(np.asarray(sigma) > 0):
            raise ValueError(f"Gaussian likelihood needs a positive sigma, got {sigma}")
        self.log_sigma.assign(np.log(sigma))
