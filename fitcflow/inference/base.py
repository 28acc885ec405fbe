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

import abc
import enum
import logging
from typing import Any, Dict, Optional, Tuple

import numpy as np
import tensorflow as tf
from check_shapes import check_shapes

from ..base import AnyNDArray, InputData, Module, Parameter, RegressionData, unconstrained_variable
from ..errors import ConfigurationError
from ..inducing_variables import InducingVariables
from ..kernels import Kernel
from ..labels import Labels, as_labels
from ..likelihoods import Likelihood
from ..mean_functions import MeanFunction, Zero
from ..utilities import parameter_dict, read_values, to_default_float

logger = logging.getLogger(__name__)


class InferenceType(enum.Enum):
    FITC_REGRESSION = "fitc_regression"


class InferenceState(enum.Enum):
    """
    Freshness of the cached results of an inference method.

    * ``DIRTY``: something the results depend on changed, nothing cached can be used.
    * ``GRADIENT_DIRTY``: the factorization is current, the gradient state is not.
    * ``CLEAN``: everything cached is current.
    """

    CLEAN = "clean"
    DIRTY = "dirty"
    GRADIENT_DIRTY = "gradient_dirty"


Snapshot = Tuple[Tuple[int, ...], Dict[str, AnyNDArray]]


class InferenceMethod(Module, metaclass=abc.ABCMeta):
    """
    Base class for inference methods of Gaussian process models.

    An inference method holds its collaborators (kernel, mean function,
    likelihood, labels, inputs) by reference and caches the results derived
    from them. Before answering a query it compares the values of every
    parameter and variable reachable from it against a snapshot taken at the
    last successful :meth:`update`, and recomputes when they differ. Replacing
    a collaborator altogether is noticed as well.

    Instances are not thread-safe.
    """

    @check_shapes(
        "data[0]: [N, D]",
    )
    def __init__(
        self,
        data: RegressionData,
        kernel: Kernel,
        likelihood: Likelihood,
        mean_function: Optional[MeanFunction] = None,
    ) -> None:
        super().__init__()
        X, Y = data
        if not isinstance(X, tf.Variable):
            X = to_default_float(X)
        self.X = X
        self.labels = as_labels(Y)
        self.kernel = kernel
        if mean_function is None:
            mean_function = Zero()
        self.mean_function = mean_function
        self.likelihood = likelihood
        self._state = InferenceState.DIRTY
        self._snapshot: Optional[Snapshot] = None

    @property
    def data(self) -> Tuple[InputData, Labels]:
        return self.X, self.labels

    @property
    def num_data(self) -> int:
        return int(self.X.shape[0])

    @property
    def state(self) -> InferenceState:
        return self._state

    # Collaborators and data, the identity of which is part of the snapshot.
    def _collaborators(self) -> Tuple[Any, ...]:
        return (self.X, self.labels, self.kernel, self.mean_function, self.likelihood)

    def _take_snapshot(self) -> Snapshot:
        values = read_values(self)
        return tuple(id(c) for c in self._collaborators()), values

    def _snapshot_outdated(self) -> bool:
        if self._snapshot is None:
            return True
        identities, values = self._snapshot
        current_identities, current_values = self._take_snapshot()
        if identities != current_identities or values.keys() != current_values.keys():
            return True
        return not all(np.array_equal(values[k], current_values[k]) for k in values)

    def _refresh_state(self) -> None:
        if self._state is not InferenceState.DIRTY and self._snapshot_outdated():
            logger.debug("%s: parameters changed since last update", type(self).__name__)
            self._state = InferenceState.DIRTY

    def _commit(self, state: InferenceState) -> None:
        self._snapshot = self._take_snapshot()
        self._state = state

    def _ensure_updated(self) -> None:
        self._refresh_state()
        if self._state is InferenceState.DIRTY:
            self.update()

    def _ensure_gradient_state(self) -> None:
        self._ensure_updated()
        if self._state is InferenceState.GRADIENT_DIRTY:
            self._update_gradient_state()
            self._state = InferenceState.CLEAN

    def check_members(self) -> None:
        """
        Raises :class:`ConfigurationError` when the collaborators do not fit
        together. Called at construction and before every update.
        """
        num_labels = self.labels.num_labels
        if num_labels != self.num_data:
            raise ConfigurationError(
                f"Number of labels ({num_labels}) must match number of inputs ({self.num_data})"
            )

    @abc.abstractmethod
    def update(self) -> None:
        """
        Recomputes the cached factorization unconditionally. Leaves the cache
        untouched when it raises.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def _update_gradient_state(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def get_inference_type(self) -> InferenceType:
        raise NotImplementedError

    @abc.abstractmethod
    @check_shapes(
        "return: []",
    )
    def get_negative_log_marginal_likelihood(self) -> tf.Tensor:
        raise NotImplementedError

    @check_shapes(
        "return: []",
    )
    def log_marginal_likelihood(self) -> tf.Tensor:
        return -self.get_negative_log_marginal_likelihood()

    @abc.abstractmethod
    def get_derivative_wrt_likelihood_parameter(self, name: str) -> tf.Tensor:
        raise NotImplementedError

    @abc.abstractmethod
    def get_derivative_wrt_inference_method(self, name: str) -> tf.Tensor:
        raise NotImplementedError

    @abc.abstractmethod
    def get_derivative_wrt_kernel(self, parameter: Parameter) -> tf.Tensor:
        raise NotImplementedError

    @abc.abstractmethod
    def get_derivative_wrt_mean(self, parameter: Parameter) -> tf.Tensor:
        raise NotImplementedError

    def get_derivative_wrt_inducing_features(self) -> tf.Tensor:
        raise ConfigurationError(f"{type(self).__name__} has no inducing features")

    def _inducing_variable(self) -> Optional[InducingVariables]:
        return None

    def get_negative_log_marginal_likelihood_derivatives(self) -> Dict[str, tf.Tensor]:
        """
        Returns the derivative of the negative log marginal likelihood with
        respect to the unconstrained value of every trainable parameter, keyed
        by the parameter's path as given by
        :func:`fitcflow.utilities.parameter_dict`.
        """
        return {
            path: self._derivative_wrt_parameter(parameter)
            for path, parameter in parameter_dict(self).items()
            if isinstance(parameter, Parameter) and parameter.trainable
        }

    def _derivative_wrt_parameter(self, parameter: Parameter) -> tf.Tensor:
        ref = unconstrained_variable(parameter).ref()

        def owns(module: Optional[tf.Module]) -> bool:
            return module is not None and ref in {v.ref() for v in module.variables}

        for name, own in self._own_parameters().items():
            if unconstrained_variable(own).ref() == ref:
                return self.get_derivative_wrt_inference_method(name)
        if owns(self.likelihood):
            name = self._likelihood_parameter_name(parameter)
            return self.get_derivative_wrt_likelihood_parameter(name)
        if owns(self.kernel):
            return self.get_derivative_wrt_kernel(parameter)
        if owns(self.mean_function):
            return self.get_derivative_wrt_mean(parameter)
        inducing_variable = self._inducing_variable()
        if owns(inducing_variable):
            return self.get_derivative_wrt_inducing_features()
        raise ConfigurationError(
            f"Parameter {parameter.name} belongs to none of the collaborators of "
            f"{type(self).__name__}"
        )

    def _own_parameters(self) -> Dict[str, Parameter]:
        """ Parameters held by the inference method itself, by name. """
        return {}

    def _likelihood_parameter_name(self, parameter: Parameter) -> str:
        ref = unconstrained_variable(parameter).ref()
        for name in self.likelihood.parameter_names:
            candidate = getattr(self.likelihood, name, None)
            if candidate is not None and unconstrained_variable(candidate).ref() == ref:
                return name
        raise ConfigurationError(
            f"Parameter {parameter.name} is not a parameter of {type(self.likelihood).__name__}"
        )

    @classmethod
    def obtain_from_generic(cls, inference: "InferenceMethod") -> "InferenceMethod":
        """
        Checked narrowing: returns `inference` when it is an instance of this
        class, raises :class:`ConfigurationError` otherwise.
        """
        if not isinstance(inference, cls):
            raise ConfigurationError(
                f"Expected a {cls.__name__}, got {type(inference).__name__}"
            )
        return inference

    def supports_regression(self) -> bool:
        return False

    def supports_binary(self) -> bool:
        return False
