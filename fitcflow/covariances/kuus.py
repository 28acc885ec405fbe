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

import tensorflow as tf
from check_shapes import check_shapes

from ..inducing_variables import InducingPoints
from ..kernels import Kernel
from .dispatch import Kuu


@Kuu.register(InducingPoints, Kernel)
@check_shapes(
    "return: [M, M]",
)
def Kuu_kernel_inducingpoints(
    inducing_variable: InducingPoints, kernel: Kernel, *, jitter: float = 0.0
) -> tf.Tensor:
    """ Prior covariance among the inducing points, with `jitter` on the diagonal. """
    Kzz = kernel(inducing_variable.Z)
    if jitter:
        Kzz = tf.linalg.set_diag(Kzz, tf.linalg.diag_part(Kzz) + jitter)
    return Kzz
