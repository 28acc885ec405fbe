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

r"""
Inference for sparse Gaussian process regression with the Fully Independent
Training Conditional (FITC) approximation.

The key reference is :cite:t:`Snelson06sparsegaussian`. The gradients follow
the closed forms of the GPML toolbox (``infFITC``). Those are folded into one
weight per entry of each covariance block when the gradient state is built,
in O(m²n). A derivative with respect to kernel parameters or inducing points
is then a single reverse pass through the kernel, in O(mn) memory.

All Cholesky factors here are *upper* triangular: a factor ``U`` of ``A``
satisfies ``UᵀU = A``. With :math:`s = \exp(2 \log\_scale)` and
:math:`\nu = \exp(\log\_inducing\_noise)`:

.. math::
   :nowrap:

   \begin{align}
       L_{uu}^\top L_{uu} &= s K_{uu} + \nu I \\
       V &= L_{uu}^{-\top} s K_{uf} \\
       t &= 1 / (s \operatorname{diag}(K_{ff}) + \sigma^2 - \operatorname{colsum}(V \circ V)) \\
       L_u^\top L_u &= V \operatorname{diag}(t) V^\top + I
   \end{align}
"""

import logging
import warnings
from typing import Any, Dict, NamedTuple, Optional, Tuple, Union

import numpy as np
import tensorflow as tf
from check_shapes import check_shapes, inherit_check_shapes
from deprecated import deprecated

from ..base import (
    AnyNDArray,
    InputData,
    MeanAndVariance,
    Parameter,
    RegressionData,
    TensorType,
    unconstrained_variable,
)
from ..config import default_float, default_inducing_noise
from ..covariances import Kuf, Kuu
from ..errors import ConfigurationError, NumericalError
from ..inducing_variables import InducingPoints, InducingVariables
from ..kernels import Kernel
from ..labels import LabelType
from ..likelihoods import Gaussian, Likelihood, LikelihoodType
from ..mean_functions import MeanFunction
from ..utilities import ops
from .base import InferenceMethod, InferenceState, InferenceType

logger = logging.getLogger(__name__)

InducingVariablesLike = Union[InducingVariables, tf.Tensor, AnyNDArray]


def inducingpoint_wrapper(inducing_variable: InducingVariablesLike) -> InducingVariables:
    """
    This wrapper allows transparently passing either an InducingVariables
    object or an array specifying InducingPoints positions.
    """
    if not isinstance(inducing_variable, InducingVariables):
        inducing_variable = InducingPoints(inducing_variable)
    return inducing_variable


class CovarianceBlocks(NamedTuple):
    """ Unscaled kernel values, fetched once per update. """

    kuu: tf.Tensor  # [M, M]
    ktru: tf.Tensor  # [M, N]
    ktrtr_diag: tf.Tensor  # [N]


class FactorizationState(NamedTuple):
    Luu: tf.Tensor  # [M, M]
    V: tf.Tensor  # [M, N]
    t: tf.Tensor  # [N]
    Lu: tf.Tensor  # [M, M]
    r: tf.Tensor  # [N]
    be: tf.Tensor  # [M]
    L: tf.Tensor  # [M, M]
    alpha: tf.Tensor  # [M]


class CovarianceAdjoint(NamedTuple):
    """
    Weights turning a change of the *scaled* covariance blocks into the change
    of the negative log marginal likelihood:

        d nlZ = Σ diag ∘ d(s diag(Kff)) + Σ kuu ∘ d(s Kuu) + Σ ktru ∘ d(s Kuf)
    """

    diag: tf.Tensor  # [N]
    kuu: tf.Tensor  # [M, M]
    ktru: tf.Tensor  # [M, N]


class PosteriorState(NamedTuple):
    """ Terms shared by every derivative of the negative log marginal likelihood. """

    al: tf.Tensor  # [N]
    B: tf.Tensor  # [M, N]
    w: tf.Tensor  # [M]
    W: tf.Tensor  # [M, N]
    adjoint: CovarianceAdjoint


def _upper_cholesky_or_raise(A: tf.Tensor, what: str) -> tf.Tensor:
    try:
        U = ops.upper_cholesky(A)
    except tf.errors.InvalidArgumentError as e:
        raise NumericalError(f"{what} not positive definite") from e
    # GPU kernels return NaNs instead of raising.
    if not tf.reduce_all(tf.math.is_finite(U)):
        raise NumericalError(f"{what} not positive definite")
    return U


def _solve_upper(U: tf.Tensor, rhs: tf.Tensor, transpose: bool = False) -> tf.Tensor:
    """ Returns U⁻¹ rhs, or U⁻ᵀ rhs when `transpose` is set. """
    return tf.linalg.triangular_solve(U, rhs, lower=False, adjoint=transpose)


def _solve_upper_vector(U: tf.Tensor, rhs: tf.Tensor, transpose: bool = False) -> tf.Tensor:
    return _solve_upper(U, rhs[:, None], transpose=transpose)[:, 0]


class FITCInferenceMethod(InferenceMethod):
    r"""
    FITC inference for Gaussian process regression with a Gaussian likelihood.

    The training covariance is replaced by the low-rank-plus-diagonal
    approximation :math:`Q_{ff} + \operatorname{diag}(K_{ff} - Q_{ff})` with
    :math:`Q_{ff} = K_{fu} K_{uu}^{-1} K_{uf}`, which makes inference cost
    O(m²n) instead of O(n³).

    Results are cached. Changing any parameter reachable from this object
    (kernel, mean function, likelihood, inducing points, `log_scale`,
    `log_inducing_noise`, variable inputs or labels) invalidates the cache,
    and the next query recomputes it. :attr:`state` tells which parts of the
    cache are current.

    Derivatives are taken with respect to the *unconstrained* value of each
    parameter.
    """

    def __init__(
        self,
        data: RegressionData,
        kernel: Kernel,
        inducing_variable: InducingVariablesLike,
        *,
        mean_function: Optional[MeanFunction] = None,
        likelihood: Optional[Likelihood] = None,
        log_scale: TensorType = 0.0,
        log_inducing_noise: Optional[TensorType] = None,
    ) -> None:
        """
        :param data: a tuple of inputs `X` with shape [N, D] and labels `Y`,
            either :class:`~fitcflow.labels.Labels` or an array with shape [N, 1].
        :param kernel: the prior covariance.
        :param inducing_variable: inducing points, or their positions as an
            array with shape [M, D].
        :param mean_function: prior mean, zero by default.
        :param likelihood: a :class:`~fitcflow.likelihoods.Gaussian`, with
            unit standard deviation by default.
        :param log_scale: half the logarithm of the factor the kernel is scaled by.
        :param log_inducing_noise: logarithm of the noise added to the
            diagonal of the inducing covariance. Defaults to the logarithm of
            :func:`~fitcflow.config.default_inducing_noise`.
        """
        if likelihood is None:
            likelihood = Gaussian()
        super().__init__(data, kernel, likelihood, mean_function)
        self.inducing_variable = inducingpoint_wrapper(inducing_variable)
        if log_inducing_noise is None:
            log_inducing_noise = np.log(default_inducing_noise())
        self.log_scale = Parameter(log_scale, name="log_scale")
        self.log_inducing_noise = Parameter(log_inducing_noise, name="log_inducing_noise")

        self._blocks: Optional[CovarianceBlocks] = None
        self._factorization: Optional[FactorizationState] = None
        self._posterior: Optional[PosteriorState] = None
        self.check_members()

    def _collaborators(self) -> Tuple[Any, ...]:
        return super()._collaborators() + (self.inducing_variable,)

    def _own_parameters(self) -> Dict[str, Parameter]:
        return {"log_scale": self.log_scale, "log_inducing_noise": self.log_inducing_noise}

    def _inducing_variable(self) -> Optional[InducingVariables]:
        return self.inducing_variable

    def check_members(self) -> None:
        super().check_members()
        if self.likelihood.likelihood_type is not LikelihoodType.GAUSSIAN:
            raise ConfigurationError(
                f"FITC inference requires a Gaussian likelihood, got "
                f"{type(self.likelihood).__name__}"
            )
        if self.labels.label_type is not LabelType.REGRESSION:
            raise ConfigurationError(
                f"FITC inference requires regression labels, got {type(self.labels).__name__}"
            )

    def _gaussian_likelihood(self) -> Gaussian:
        likelihood = self.likelihood
        if not isinstance(likelihood, Gaussian):
            raise ConfigurationError(
                f"Expected a Gaussian likelihood, got {type(likelihood).__name__}"
            )
        return likelihood

    @check_shapes(
        "return: []",
    )
    def _scale(self) -> tf.Tensor:
        return tf.exp(2 * self.log_scale)

    @check_shapes(
        "return: []",
    )
    def _inducing_noise(self) -> tf.Tensor:
        return tf.exp(self.log_inducing_noise)

    def _covariance_blocks(self) -> CovarianceBlocks:
        return CovarianceBlocks(
            kuu=Kuu(self.inducing_variable, self.kernel),
            ktru=Kuf(self.inducing_variable, self.kernel, self.X),
            ktrtr_diag=self.kernel(self.X, full_cov=False),
        )

    @check_shapes(
        "return: [N]",
    )
    def _residual(self) -> tf.Tensor:
        return self.labels.get_labels() - self.mean_function(self.X)[:, 0]

    def _factorize(self, blocks: CovarianceBlocks) -> FactorizationState:
        scale = self._scale()
        sigma_sq = self._gaussian_likelihood().variance
        identity = tf.eye(tf.shape(blocks.kuu)[0], dtype=blocks.kuu.dtype)

        Luu = _upper_cholesky_or_raise(
            scale * blocks.kuu + self._inducing_noise() * identity, "inducing covariance"
        )
        V = _solve_upper(Luu, scale * blocks.ktru, transpose=True)  # => VᵀV = Qff

        # Reciprocal of the FITC noise: diagonal correction plus likelihood noise.
        dg = scale * blocks.ktrtr_diag + sigma_sq - ops.colsum_of_squares(V)
        if not tf.reduce_all(dg > 0):
            raise NumericalError(
                "FITC diagonal is not positive; increase the likelihood noise or "
                "the inducing noise"
            )
        t = 1.0 / dg
        sqrt_t = tf.sqrt(t)

        Lu = _upper_cholesky_or_raise(
            tf.linalg.matmul(V * t, V, transpose_b=True) + identity, "updated inducing covariance"
        )
        r = self._residual() * sqrt_t
        be = _solve_upper_vector(Lu, tf.linalg.matvec(V, r * sqrt_t), transpose=True)

        inv_Kuu = _solve_upper(Luu, _solve_upper(Luu, identity, transpose=True))
        LuLuu = tf.linalg.matmul(Lu, Luu)
        L = _solve_upper(LuLuu, _solve_upper(LuLuu, identity, transpose=True)) - inv_Kuu

        alpha = _solve_upper_vector(Luu, _solve_upper_vector(Lu, be))
        return FactorizationState(Luu=Luu, V=V, t=t, Lu=Lu, r=r, be=be, L=L, alpha=alpha)

    def update(self) -> None:
        """
        Recomputes the factorization and the posterior weights, whatever the
        current :attr:`state`.

        :raises ConfigurationError: if the collaborators do not fit together.
        :raises NumericalError: if a factorization fails. The previous results
            stay cached.
        """
        num_inducing = int(self.inducing_variable.num_inducing)
        logger.debug("FITC: factorizing with %d inducing points", num_inducing)
        self.check_members()
        blocks = self._covariance_blocks()
        factorization = self._factorize(blocks)

        self._blocks = blocks
        self._factorization = factorization
        self._posterior = None
        self._commit(InferenceState.GRADIENT_DIRTY)

    def _update_gradient_state(self) -> None:
        logger.debug("FITC: computing gradient state")
        f = self._factorization
        assert f is not None, "gradient state requested before a successful update"
        B = _solve_upper(f.Luu, f.V)  # => B = inv(Kuu) Kuf, both scaled
        al = f.r * tf.sqrt(f.t) - tf.linalg.matvec(
            f.V, _solve_upper_vector(f.Lu, f.be), transpose_a=True
        ) * f.t
        w = tf.linalg.matvec(B, al)
        W = _solve_upper(f.Lu, f.V * f.t, transpose=True)
        self._posterior = PosteriorState(
            al=al, B=B, w=w, W=W, adjoint=self._covariance_adjoint(f.t, al, B, w, W)
        )

    @staticmethod
    @check_shapes(
        "t: [N]",
        "al: [N]",
        "B: [M, N]",
        "w: [M]",
        "W: [M, N]",
    )
    def _covariance_adjoint(
        t: tf.Tensor, al: tf.Tensor, B: tf.Tensor, w: tf.Tensor, W: tf.Tensor
    ) -> CovarianceAdjoint:
        """
        Collects the derivative of the negative log marginal likelihood,

            (ddiag·t + w·dKuu·w − 2 w·dKu·al − v·(al² + colsum(W²))
             − Σ (R Wᵀ)∘(B Wᵀ)) / 2

        with R = 2 dKu − dKuu B and v = ddiag − colsum(R∘B), into one weight
        per entry of each block. Costs O(m²n) time and O(mn) memory.
        """
        c = tf.square(al) + ops.colsum_of_squares(W)
        # G is the weight of R.
        G = B * c - tf.linalg.matmul(tf.linalg.matmul(B, W, transpose_b=True), W)
        return CovarianceAdjoint(
            diag=(t - c) / 2,
            kuu=(w[:, None] * w[None, :] - tf.linalg.matmul(G, B, transpose_b=True)) / 2,
            ktru=G - w[:, None] * al[None, :],
        )

    def _current_factorization(self) -> FactorizationState:
        self._ensure_updated()
        assert self._factorization is not None
        return self._factorization

    def _current_posterior(self) -> Tuple[FactorizationState, PosteriorState]:
        self._ensure_gradient_state()
        assert self._factorization is not None and self._posterior is not None
        return self._factorization, self._posterior

    def get_inference_type(self) -> InferenceType:
        return InferenceType.FITC_REGRESSION

    def supports_regression(self) -> bool:
        return True

    def supports_binary(self) -> bool:
        return False

    def register_minimizer(self, minimizer: Any) -> None:
        """ FITC regression is solved in closed form: the minimizer is ignored. """
        warnings.warn(
            "FITC inference has a closed-form solution and does not use a minimizer; "
            f"ignoring {type(minimizer).__name__}",
            UserWarning,
        )

    @inherit_check_shapes
    def get_negative_log_marginal_likelihood(self) -> tf.Tensor:
        f, _ = self._current_posterior()
        num_data = tf.cast(tf.shape(f.t)[0], f.t.dtype)
        log_2pi = tf.math.log(tf.constant(2.0 * np.pi, dtype=f.t.dtype))
        return tf.reduce_sum(tf.math.log(tf.linalg.diag_part(f.Lu))) + (
            -tf.reduce_sum(tf.math.log(f.t))
            + tf.reduce_sum(tf.square(f.r))
            - tf.reduce_sum(tf.square(f.be))
            + num_data * log_2pi
        ) / 2

    @check_shapes(
        "return: []",
    )
    def get_derivative_wrt_likelihood_parameter(self, name: str) -> tf.Tensor:
        """
        Derivative of the negative log marginal likelihood with respect to a
        parameter of the likelihood. Only ``"log_sigma"`` is supported.
        """
        likelihood = self._gaussian_likelihood()
        if name != "log_sigma":
            raise ConfigurationError(
                f"Cannot differentiate with respect to parameter '{name}' of "
                f"{type(likelihood).__name__}; only 'log_sigma' is supported"
            )
        f, p = self._current_posterior()
        return likelihood.variance * (
            tf.reduce_sum(f.t) - tf.reduce_sum(tf.square(p.W)) - tf.reduce_sum(tf.square(p.al))
        )

    @deprecated(reason="Use get_derivative_wrt_likelihood_parameter instead")
    def get_derivative_wrt_likelihood_model(self, name: str) -> tf.Tensor:
        return self.get_derivative_wrt_likelihood_parameter(name)

    @staticmethod
    def _weighted_blocks(adjoint: CovarianceAdjoint, blocks: CovarianceBlocks) -> tf.Tensor:
        """ The unscaled blocks contracted against their adjoint weights. """
        return (
            tf.reduce_sum(adjoint.diag * blocks.ktrtr_diag)
            + tf.reduce_sum(adjoint.kuu * blocks.kuu)
            + tf.reduce_sum(adjoint.ktru * blocks.ktru)
        )

    @check_shapes(
        "return: []",
    )
    def get_derivative_wrt_inference_method(self, name: str) -> tf.Tensor:
        """
        Derivative of the negative log marginal likelihood with respect to
        ``"log_scale"`` or ``"log_inducing_noise"``.
        """
        if name not in self._own_parameters():
            raise ConfigurationError(
                f"Cannot differentiate with respect to parameter '{name}' of "
                f"{type(self).__name__}; expected one of {sorted(self._own_parameters())}"
            )
        _, p = self._current_posterior()
        blocks = self._blocks
        assert blocks is not None
        if name == "log_scale":
            # every scaled block is linear in s = exp(2 log_scale)
            return 2 * self._scale() * self._weighted_blocks(p.adjoint, blocks)
        return self._inducing_noise() * tf.linalg.trace(p.adjoint.kuu)

    def _check_owned(self, module: tf.Module, parameter: Parameter, what: str) -> tf.Variable:
        variable = unconstrained_variable(parameter)
        if variable.ref() not in {v.ref() for v in module.variables}:
            raise ConfigurationError(f"Parameter {parameter.name} is not a parameter of the {what}")
        return variable

    def _derivative_wrt_covariance_variable(self, variable: tf.Variable) -> tf.Tensor:
        _, p = self._current_posterior()
        with tf.GradientTape() as tape:
            tape.watch(variable)
            weighted = self._weighted_blocks(p.adjoint, self._covariance_blocks())
        gradient = tape.gradient(
            weighted, variable, unconnected_gradients=tf.UnconnectedGradients.ZERO
        )
        return self._scale() * tf.convert_to_tensor(gradient)

    def get_derivative_wrt_kernel(self, parameter: Parameter) -> tf.Tensor:
        """
        Derivative of the negative log marginal likelihood with respect to the
        unconstrained value of a kernel parameter. Has the parameter's shape.
        """
        variable = self._check_owned(self.kernel, parameter, "kernel")
        return self._derivative_wrt_covariance_variable(variable)

    @check_shapes(
        "return: [M, D]",
    )
    def get_derivative_wrt_inducing_features(self) -> tf.Tensor:
        """
        Derivative of the negative log marginal likelihood with respect to the
        (unconstrained) inducing point positions.
        """
        inducing_variable = self.inducing_variable
        if not isinstance(inducing_variable, InducingPoints):
            raise ConfigurationError(
                f"Cannot differentiate with respect to {type(inducing_variable).__name__}"
            )
        return self._derivative_wrt_covariance_variable(unconstrained_variable(inducing_variable.Z))

    def get_derivative_wrt_mean(self, parameter: Parameter) -> tf.Tensor:
        """
        Derivative of the negative log marginal likelihood with respect to the
        unconstrained value of a mean function parameter. Has the parameter's
        shape.
        """
        variable = self._check_owned(self.mean_function, parameter, "mean function")
        _, p = self._current_posterior()
        al = tf.stop_gradient(p.al)
        with tf.GradientTape() as tape:
            tape.watch(variable)
            weighted = -tf.reduce_sum(self.mean_function(self.X)[:, 0] * al)
        gradient = tape.gradient(
            weighted, variable, unconnected_gradients=tf.UnconnectedGradients.ZERO
        )
        return tf.convert_to_tensor(gradient)

    @check_shapes(
        "return: [N]",
    )
    def get_posterior_mean(self) -> tf.Tensor:
        """ Posterior mean of the latent function at the training inputs. """
        f = self._current_factorization()
        assert self._blocks is not None
        return self._scale() * tf.linalg.matvec(self._blocks.ktru, f.alpha, transpose_a=True)

    @check_shapes(
        "return: [N, N]",
    )
    def get_posterior_covariance(self) -> tf.Tensor:
        """
        Posterior covariance of the latent function at the training inputs.

        This costs O(mn²) time and O(n²) memory, far more than any other
        query. Prefer :meth:`predict_f` when only the marginal variances are
        needed.
        """
        f = self._current_factorization()
        assert self._blocks is not None
        num_data = self.num_data
        logger.debug("FITC: building the dense %d x %d posterior covariance", num_data, num_data)
        part1_t = _solve_upper(f.Lu, f.V, transpose=True)  # => part1 = Vᵀ Lu⁻¹ = part1_tᵀ
        part2 = self._scale() * self._blocks.ktrtr_diag - ops.colsum_of_squares(f.V)
        return tf.linalg.matmul(part1_t, part1_t, transpose_a=True) + tf.linalg.diag(part2)

    @check_shapes(
        "return: [N]",
    )
    def get_diagonal_vector(self) -> tf.Tensor:
        """ The noise precision 1/σ of every training point. """
        self._ensure_updated()
        sigma = self._gaussian_likelihood().sigma
        return tf.fill([self.num_data], 1.0 / sigma)

    @check_shapes(
        "return: [M]",
    )
    def get_alpha(self) -> tf.Tensor:
        return self._current_factorization().alpha

    @check_shapes(
        "return: [M, M]",
    )
    def get_cholesky(self) -> tf.Tensor:
        """
        Returns L = (Lu Luu)⁻¹ (Lu Luu)⁻ᵀ - (s Kuu + ν I)⁻¹, the matrix that
        turns prior cross-covariances into the posterior variance correction.
        """
        return self._current_factorization().L

    @check_shapes(
        "return: [M, D]",
    )
    def get_inducing_features(self) -> tf.Tensor:
        inducing_variable = self.inducing_variable
        if not isinstance(inducing_variable, InducingPoints):
            raise ConfigurationError(
                f"{type(inducing_variable).__name__} has no inducing point positions"
            )
        return tf.convert_to_tensor(inducing_variable.Z)

    @check_shapes(
        "Xnew: [N, D]",
        "return[0]: [N, 1]",
        "return[1]: [N, N] if full_cov",
        "return[1]: [N, 1] if not full_cov",
    )
    def predict_f(self, Xnew: InputData, full_cov: bool = False) -> MeanAndVariance:
        """
        Compute the mean and variance of the latent function at some new points
        Xnew.
        """
        f = self._current_factorization()
        scale = self._scale()
        Xnew = tf.convert_to_tensor(Xnew, dtype=default_float())
        Ks = scale * Kuf(self.inducing_variable, self.kernel, Xnew)  # [M, N]
        mean = tf.linalg.matmul(Ks, f.alpha[:, None], transpose_a=True) + self.mean_function(Xnew)
        LKs = tf.linalg.matmul(f.L, Ks)
        if full_cov:
            var = scale * self.kernel(Xnew) + tf.linalg.matmul(Ks, LKs, transpose_a=True)
        else:
            var = scale * self.kernel(Xnew, full_cov=False) + tf.reduce_sum(Ks * LKs, 0)
            var = var[:, None]
        return mean, var

    @check_shapes(
        "Xnew: [N, D]",
        "return[0]: [N, 1]",
        "return[1]: [N, N] if full_cov",
        "return[1]: [N, 1] if not full_cov",
    )
    def predict_y(self, Xnew: InputData, full_cov: bool = False) -> MeanAndVariance:
        """ Like :meth:`predict_f`, with the likelihood noise added to the variance. """
        mean, var = self.predict_f(Xnew, full_cov=full_cov)
        noise = self._gaussian_likelihood().variance
        if full_cov:
            return mean, var + noise * tf.eye(tf.shape(var)[0], dtype=var.dtype)
        return mean, var + noise
