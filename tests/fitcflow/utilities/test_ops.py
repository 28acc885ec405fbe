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

import numpy as np
import pytest

from fitcflow.utilities.ops import colsum_of_squares, square_distance, upper_cholesky


def test_square_distance(rng: np.random.Generator) -> None:
    X = rng.standard_normal((4, 3))
    X2 = rng.standard_normal((5, 3))
    expected = ((X[:, None, :] - X2[None, :, :]) ** 2).sum(-1)
    np.testing.assert_allclose(square_distance(X, X2), expected, atol=1e-12)
    np.testing.assert_allclose(
        square_distance(X, None), ((X[:, None, :] - X[None, :, :]) ** 2).sum(-1), atol=1e-12
    )


def test_colsum_of_squares(rng: np.random.Generator) -> None:
    A = rng.standard_normal((3, 6))
    np.testing.assert_allclose(colsum_of_squares(A), np.diag(A.T @ A))


@pytest.mark.parametrize("size", [1, 2, 5])
def test_upper_cholesky(rng: np.random.Generator, size: int) -> None:
    B = rng.standard_normal((size, size))
    A = B @ B.T + size * np.eye(size)
    U = upper_cholesky(A).numpy()
    np.testing.assert_allclose(U, np.triu(U))
    assert np.all(np.diag(U) > 0)
    np.testing.assert_allclose(U.T @ U, A, rtol=1e-12)
