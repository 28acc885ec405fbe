# Copyright 2018 the GPflow authors.
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
import tensorflow as tf

import fitcflow
from fitcflow.kernels import Kernel, Linear, Matern52, Product, SquaredExponential, Sum


def test_linear_kernel_on_unit_vectors() -> None:
    X = np.eye(3)
    Z = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    kernel = Linear()
    np.testing.assert_allclose(kernel(Z), np.eye(2))
    np.testing.assert_allclose(kernel(Z, X), Z)
    np.testing.assert_allclose(kernel(X, full_cov=False), np.ones(3))


def test_squared_exponential(rng: np.random.Generator) -> None:
    X = rng.standard_normal((5, 2))
    X2 = rng.standard_normal((4, 2))
    lengthscales = np.array([0.7, 1.9])
    kernel = SquaredExponential(variance=1.5, lengthscales=lengthscales)
    r2 = (((X[:, None, :] - X2[None, :, :]) / lengthscales) ** 2).sum(-1)
    np.testing.assert_allclose(kernel(X, X2), 1.5 * np.exp(-0.5 * r2), atol=1e-12)
    np.testing.assert_allclose(kernel(X, full_cov=False), np.full(5, 1.5))
    assert kernel.ard


def test_matern52_diagonal_matches_full(rng: np.random.Generator) -> None:
    X = rng.standard_normal((6, 3))
    kernel = Matern52(variance=0.8, lengthscales=1.2)
    np.testing.assert_allclose(np.diag(kernel(X)), kernel(X, full_cov=False), rtol=1e-10)
    assert not kernel.ard


def test_active_dims(rng: np.random.Generator) -> None:
    X = rng.standard_normal((4, 3))
    kernel = Linear(variance=[1.0, 2.0], active_dims=[0, 2])
    expected = (X[:, [0, 2]] * [1.0, 2.0]) @ X[:, [0, 2]].T
    np.testing.assert_allclose(kernel(X), expected)
    with pytest.raises(ValueError):
        Linear(variance=[1.0, 2.0], active_dims=[0])


def test_combinations(rng: np.random.Generator) -> None:
    X = rng.standard_normal((5, 2))
    k1 = SquaredExponential()
    k2 = Linear(variance=0.5)
    k3 = Matern52()

    total = k1 + k2 + k3
    assert isinstance(total, Sum)
    assert len(total.kernels) == 3
    np.testing.assert_allclose(total(X), k1(X) + k2(X) + k3(X))

    product = k1 * k2
    assert isinstance(product, Product)
    np.testing.assert_allclose(
        product(X, full_cov=False), k1(X, full_cov=False) * k2(X, full_cov=False)
    )


def test_diag_with_second_input_is_ambiguous() -> None:
    X = np.zeros((2, 1))
    with pytest.raises(ValueError, match="Ambiguous"):
        Linear()(X, X, full_cov=False)


def test_unknown_keyword() -> None:
    with pytest.raises(TypeError):
        SquaredExponential(bogus=1.0)  # type: ignore[arg-type]


def test_positive_parameters() -> None:
    kernel = SquaredExponential(variance=2.0)
    assert isinstance(kernel, Kernel)
    assert isinstance(kernel.variance, fitcflow.Parameter)
    np.testing.assert_allclose(kernel.variance.numpy(), 2.0)
    with pytest.raises(tf.errors.InvalidArgumentError):
        kernel.variance.assign(-1.0)
