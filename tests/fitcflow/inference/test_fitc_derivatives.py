# Copyright 2016-2020 the GPflow authors.
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

from typing import Callable

import numpy as np
import pytest
import tensorflow as tf
import tensorflow_probability as tfp

import fitcflow
from fitcflow.base import unconstrained_variable
from fitcflow.inference import FITCInferenceMethod
from fitcflow.kernels import Kernel
from fitcflow.likelihoods import Gaussian
from fitcflow.utilities import parameter_dict, set_trainable

N, M, D = 9, 3, 2

KERNEL_FACTORIES = [
    lambda: fitcflow.kernels.SquaredExponential(variance=0.9, lengthscales=[1.3, 0.7]),
    lambda: fitcflow.kernels.Matern52(variance=1.4, lengthscales=1.1),
    lambda: fitcflow.kernels.SquaredExponential(lengthscales=2.0)
    + fitcflow.kernels.Linear(variance=[0.3, 0.5]),
]


def dense_negative_log_marginal_likelihood(inference: FITCInferenceMethod) -> tf.Tensor:
    """ -log N(y | m, Qff + diag(Kff - Qff) + σ²I), built without any low-rank algebra. """
    X = inference.X
    Z = inference.inducing_variable.Z
    kernel = inference.kernel
    scale = tf.exp(2 * inference.log_scale)
    noise = tf.exp(inference.log_inducing_noise)

    Kuu = scale * kernel(Z) + noise * tf.eye(M, dtype=tf.float64)
    Kuf = scale * kernel(Z, X)
    A = tf.linalg.triangular_solve(tf.linalg.cholesky(Kuu), Kuf, lower=True)
    Qff = tf.linalg.matmul(A, A, transpose_a=True)
    correction = scale * kernel(X, full_cov=False) - tf.linalg.diag_part(Qff)
    covariance = Qff + tf.linalg.diag(correction + inference.likelihood.variance)

    err = inference.labels.get_labels() - inference.mean_function(X)[:, 0]
    distribution = tfp.distributions.MultivariateNormalTriL(
        loc=tf.zeros_like(err), scale_tril=tf.linalg.cholesky(covariance)
    )
    return -distribution.log_prob(err)


def low_rank_negative_log_marginal_likelihood(inference: FITCInferenceMethod) -> tf.Tensor:
    """
    The same density as `dense_negative_log_marginal_likelihood`, through the
    Woodbury identity and the matrix determinant lemma, in O(m²n).
    """
    X = inference.X
    Z = inference.inducing_variable.Z
    kernel = inference.kernel
    scale = tf.exp(2 * inference.log_scale)
    noise = tf.exp(inference.log_inducing_noise)
    num_inducing = tf.shape(Z)[0]

    Kuu = scale * kernel(Z) + noise * tf.eye(num_inducing, dtype=tf.float64)
    Kuf = scale * kernel(Z, X)
    L_uu = tf.linalg.cholesky(Kuu)
    A = tf.linalg.triangular_solve(L_uu, Kuf, lower=True)
    Lambda = (
        scale * kernel(X, full_cov=False)
        - tf.reduce_sum(tf.square(A), axis=0)
        + inference.likelihood.variance
    )
    err = inference.labels.get_labels() - inference.mean_function(X)[:, 0]

    L_sigma = tf.linalg.cholesky(Kuu + tf.linalg.matmul(Kuf / Lambda, Kuf, transpose_b=True))
    c = tf.linalg.triangular_solve(L_sigma, tf.linalg.matvec(Kuf, err / Lambda)[:, None])
    log_det = (
        2 * tf.reduce_sum(tf.math.log(tf.linalg.diag_part(L_sigma)))
        - 2 * tf.reduce_sum(tf.math.log(tf.linalg.diag_part(L_uu)))
        + tf.reduce_sum(tf.math.log(Lambda))
    )
    quadratic = tf.reduce_sum(tf.square(err) / Lambda) - tf.reduce_sum(tf.square(c))
    num_data = tf.cast(tf.shape(err)[0], tf.float64)
    return (log_det + quadratic + num_data * np.log(2 * np.pi)) / 2


def assert_derivatives_match_autodiff(
    inference: FITCInferenceMethod,
    reference: Callable[[FITCInferenceMethod], tf.Tensor],
    rtol: float = 1e-6,
    atol: float = 1e-8,
) -> None:
    variables = {
        path: unconstrained_variable(parameter)
        for path, parameter in parameter_dict(inference).items()
    }
    with tf.GradientTape() as tape:
        nlZ = reference(inference)
    expected = tape.gradient(nlZ, variables)

    derivatives = inference.get_negative_log_marginal_likelihood_derivatives()

    assert derivatives.keys() == expected.keys()
    for path, derivative in derivatives.items():
        assert derivative.shape == variables[path].shape, path
        np.testing.assert_allclose(derivative, expected[path], rtol=rtol, atol=atol, err_msg=path)


@pytest.fixture(name="make_inference")
def _make_inference_fixture(
    rng: np.random.Generator,
) -> Callable[[Kernel], FITCInferenceMethod]:
    X = rng.uniform(-2.0, 2.0, (N, D))
    Y = np.sin(X[:, :1]) + 0.1 * rng.standard_normal((N, 1))
    Z = rng.uniform(-2.0, 2.0, (M, D))
    A = rng.standard_normal((D, 1))

    def make_inference(kernel: Kernel) -> FITCInferenceMethod:
        return FITCInferenceMethod(
            (X, Y),
            kernel,
            Z,
            mean_function=fitcflow.mean_functions.Linear(A, [0.1]),
            likelihood=Gaussian(0.3),
            log_scale=0.15,
            log_inducing_noise=np.log(1e-4),
        )

    return make_inference


@pytest.mark.parametrize("kernel_factory", KERNEL_FACTORIES)
def test_matches_dense_fitc(
    make_inference: Callable[[Kernel], FITCInferenceMethod],
    kernel_factory: Callable[[], Kernel],
) -> None:
    inference = make_inference(kernel_factory())
    np.testing.assert_allclose(
        inference.get_negative_log_marginal_likelihood(),
        dense_negative_log_marginal_likelihood(inference),
        rtol=1e-8,
    )


@pytest.mark.parametrize("kernel_factory", KERNEL_FACTORIES)
def test_derivatives_match_autodiff(
    make_inference: Callable[[Kernel], FITCInferenceMethod],
    kernel_factory: Callable[[], Kernel],
) -> None:
    inference = make_inference(kernel_factory())
    assert_derivatives_match_autodiff(inference, dense_negative_log_marginal_likelihood)


def test_derivative_paths(make_inference: Callable[[Kernel], FITCInferenceMethod]) -> None:
    inference = make_inference(KERNEL_FACTORIES[0]())
    assert set(inference.get_negative_log_marginal_likelihood_derivatives()) == {
        ".kernel.variance",
        ".kernel.lengthscales",
        ".mean_function.A",
        ".mean_function.b",
        ".likelihood.log_sigma",
        ".inducing_variable.Z",
        ".log_scale",
        ".log_inducing_noise",
    }


def test_non_trainable_parameters_are_skipped(
    make_inference: Callable[[Kernel], FITCInferenceMethod]
) -> None:
    inference = make_inference(KERNEL_FACTORIES[0]())
    set_trainable(inference.kernel, False)
    set_trainable(inference.log_scale, False)
    assert set(inference.get_negative_log_marginal_likelihood_derivatives()) == {
        ".mean_function.A",
        ".mean_function.b",
        ".likelihood.log_sigma",
        ".inducing_variable.Z",
        ".log_inducing_noise",
    }


def test_individual_derivatives(make_inference: Callable[[Kernel], FITCInferenceMethod]) -> None:
    inference = make_inference(KERNEL_FACTORIES[0]())
    derivatives = inference.get_negative_log_marginal_likelihood_derivatives()

    lengthscales = inference.get_derivative_wrt_kernel(inference.kernel.lengthscales)
    assert lengthscales.shape == (D,)
    np.testing.assert_allclose(lengthscales, derivatives[".kernel.lengthscales"])

    features = inference.get_derivative_wrt_inducing_features()
    assert features.shape == (M, D)
    np.testing.assert_allclose(features, derivatives[".inducing_variable.Z"])

    weights = inference.get_derivative_wrt_mean(inference.mean_function.A)
    assert weights.shape == (D, 1)
    np.testing.assert_allclose(weights, derivatives[".mean_function.A"])

    for name in ["log_scale", "log_inducing_noise"]:
        derivative = inference.get_derivative_wrt_inference_method(name)
        assert derivative.shape == ()
        np.testing.assert_allclose(derivative, derivatives[f".{name}"])

    log_sigma = inference.get_derivative_wrt_likelihood_parameter("log_sigma")
    np.testing.assert_allclose(log_sigma, derivatives[".likelihood.log_sigma"])


def test_derivatives_follow_parameter_changes(
    make_inference: Callable[[Kernel], FITCInferenceMethod]
) -> None:
    inference = make_inference(KERNEL_FACTORIES[0]())
    inference.get_derivative_wrt_inference_method("log_scale")
    inference.log_scale.assign(-0.4)

    with tf.GradientTape() as tape:
        nlZ = dense_negative_log_marginal_likelihood(inference)
    expected = tape.gradient(nlZ, inference.log_scale.unconstrained_variable)

    np.testing.assert_allclose(
        inference.get_derivative_wrt_inference_method("log_scale"), expected, rtol=1e-6
    )


@pytest.mark.parametrize("kernel_factory", KERNEL_FACTORIES)
def test_low_rank_reference_matches_dense(
    make_inference: Callable[[Kernel], FITCInferenceMethod],
    kernel_factory: Callable[[], Kernel],
) -> None:
    inference = make_inference(kernel_factory())
    np.testing.assert_allclose(
        low_rank_negative_log_marginal_likelihood(inference),
        dense_negative_log_marginal_likelihood(inference),
        rtol=1e-8,
    )


def test_derivatives_on_many_data_points(rng: np.random.Generator) -> None:
    num_data, num_inducing, input_dim = 2000, 20, 3
    X = rng.uniform(-3.0, 3.0, (num_data, input_dim))
    Y = np.sin(X.sum(axis=1, keepdims=True)) + 0.1 * rng.standard_normal((num_data, 1))
    inference = FITCInferenceMethod(
        (X, Y),
        fitcflow.kernels.SquaredExponential(variance=1.2, lengthscales=[1.5, 0.8, 1.1]),
        rng.uniform(-3.0, 3.0, (num_inducing, input_dim)),
        mean_function=fitcflow.mean_functions.Linear(rng.standard_normal((input_dim, 1)), [0.2]),
        likelihood=Gaussian(0.2),
        log_scale=0.1,
        log_inducing_noise=np.log(1e-4),
    )

    assert_derivatives_match_autodiff(
        inference, low_rank_negative_log_marginal_likelihood, rtol=1e-5, atol=1e-6
    )


def test_derivatives_through_additive_mean(
    rng: np.random.Generator, make_inference: Callable[[Kernel], FITCInferenceMethod]
) -> None:
    inference = make_inference(KERNEL_FACTORIES[1]())
    constant = fitcflow.mean_functions.Constant(0.3)
    linear = fitcflow.mean_functions.Linear(rng.standard_normal((D, 1)), [-0.2])
    inference.mean_function = constant + linear
    assert isinstance(inference.mean_function, fitcflow.mean_functions.Additive)
    assert {".mean_function.add_1.c", ".mean_function.add_2.A", ".mean_function.add_2.b"} <= set(
        inference.get_negative_log_marginal_likelihood_derivatives()
    )

    assert_derivatives_match_autodiff(inference, dense_negative_log_marginal_likelihood)
