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

from typing import Optional

import tensorflow as tf
from check_shapes import check_shapes

__all__ = ["colsum_of_squares", "square_distance", "upper_cholesky"]


@check_shapes(
    "X: [batch..., N, D]",
    "X2: [batch2..., N2, D]",
    "return: [batch..., N, batch2..., N2] if X2 is not None",
    "return: [batch..., N, N] if X2 is None",
)
def square_distance(X: tf.Tensor, X2: Optional[tf.Tensor]) -> tf.Tensor:
    """
    Pairwise squared Euclidean distances between the rows of X and X2 (or
    of X with itself), computed as ‖x‖² + ‖x'‖² - 2x·x'. Rounding can leave
    entries for nearly identical rows very slightly negative.
    """
    X_sq = tf.reduce_sum(tf.square(X), axis=-1)
    if X2 is None:
        cross = tf.linalg.matmul(X, X, transpose_b=True)
        return X_sq[..., :, None] + X_sq[..., None, :] - 2 * cross
    X2_sq = tf.reduce_sum(tf.square(X2), axis=-1)
    cross = tf.tensordot(X, X2, axes=[[-1], [-1]])
    # append one singleton axis per batch2 dimension (and N2) to X_sq
    X_sq = tf.reshape(X_sq, tf.concat([tf.shape(X_sq), tf.ones_like(tf.shape(X2_sq))], axis=0))
    return X_sq + X2_sq - 2 * cross


@check_shapes(
    "A: [M, N]",
    "return: [N]",
)
def colsum_of_squares(A: tf.Tensor) -> tf.Tensor:
    """ Returns colsum(A ∘ A), i.e. the diagonal of AᵀA without forming it. """
    return tf.reduce_sum(tf.square(A), axis=0)


@check_shapes(
    "A: [M, M]",
    "return: [M, M]",
)
def upper_cholesky(A: tf.Tensor) -> tf.Tensor:
    """
    Returns the upper-triangular Cholesky factor U with UᵀU = A.

    TensorFlow factorizes into a lower factor L with LLᵀ = A, so U = Lᵀ.
    """
    return tf.linalg.matrix_transpose(tf.linalg.cholesky(A))
