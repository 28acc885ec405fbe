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

import abc
from typing import Optional

import tensorflow as tf
import tensorflow_probability as tfp
from check_shapes import check_shapes

from ..base import Module, Parameter, TensorData


class InducingVariables(Module, abc.ABC):
    """
    The m quantities a sparse approximation conditions the training outputs
    on. Covariances involving them are provided by
    :data:`fitcflow.covariances.Kuu` and :data:`fitcflow.covariances.Kuf`.
    """

    @property
    @abc.abstractmethod
    def num_inducing(self) -> tf.Tensor:
        """ The number m of inducing variables. """


class InducingPoints(InducingVariables):
    """
    Values of the latent function at the rows of `Z`, the inducing
    features. `Z` is trainable unless it is passed in as an existing variable,
    in which case that variable is used as is.
    """

    @check_shapes(
        "Z: [M, D]",
    )
    def __init__(self, Z: TensorData, name: Optional[str] = None):
        super().__init__(name=name)
        self.Z = Z if isinstance(Z, (tf.Variable, tfp.util.TransformedVariable)) else Parameter(Z)

    @property  # type: ignore[misc]
    @check_shapes(
        "return: []",
    )
    def num_inducing(self) -> tf.Tensor:
        return tf.shape(self.Z)[0]
