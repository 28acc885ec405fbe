# Copyright 2018-2020 The GPflow Contributors. All Rights Reserved.
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
Kernels are the covariance provider of the inference methods: given inputs
they return the prior covariance between latent function values.

`kernel.K(X, X2)` evaluates the kernel on every pair of rows of X and X2,
`kernel.K(X)` on every pair of rows of X, and `kernel.K_diag(X)` only on the
diagonal. FITC never needs more than the diagonal of the training covariance.
"""

import abc
from functools import reduce
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import tensorflow as tf
from check_shapes import check_shapes

from ..base import AnyNDArray, Module, TensorType

ActiveDims = Union[slice, Sequence[int]]
NormalizedActiveDims = Union[slice, AnyNDArray]


class Kernel(Module, metaclass=abc.ABCMeta):
    """
    A covariance function acting on a subset of the input columns, its
    `active_dims`. All columns are active unless told otherwise.
    """

    def __init__(
        self, active_dims: Optional[ActiveDims] = None, name: Optional[str] = None
    ) -> None:
        """
        :param active_dims: the input columns the kernel looks at, as a slice
            or a list of column indices.
        :param name: optional kernel name.
        """
        super().__init__(name=name)
        if active_dims is None:
            self._active_dims: NormalizedActiveDims = slice(None)
        elif isinstance(active_dims, slice):
            self._active_dims = active_dims
        else:
            self._active_dims = np.array(active_dims, dtype=int)

    @property
    def active_dims(self) -> NormalizedActiveDims:
        return self._active_dims

    def _active_columns(self, X: TensorType) -> tf.Tensor:
        X = tf.convert_to_tensor(X)
        if isinstance(self._active_dims, slice):
            return X[..., self._active_dims]
        return tf.gather(X, self._active_dims, axis=-1)

    @check_shapes(
        "X: [batch..., N, D]",
        "X2: [batch2..., N2, D]",
        "return[0]: [batch..., N, I]",
        "return[1]: [batch2..., N2, I]",
    )
    def slice(
        self, X: TensorType, X2: Optional[TensorType] = None
    ) -> Tuple[tf.Tensor, Optional[tf.Tensor]]:
        """ Keeps only the active columns of X and, when given, of X2. """
        return self._active_columns(X), None if X2 is None else self._active_columns(X2)

    def _validate_ard_active_dims(self, ard_parameter: TensorType) -> None:
        """
        An ARD parameter needs one entry per active dimension when the active
        dimensions are given as a list.
        """
        if isinstance(self.active_dims, slice):
            return
        shape = tf.convert_to_tensor(ard_parameter).shape
        if shape.rank > 0 and shape[0] != len(self.active_dims):
            raise ValueError(
                f"Size of `active_dims` {self.active_dims} does not match "
                f"size of ard parameter ({shape[0]})"
            )

    @abc.abstractmethod
    @check_shapes(
        "X: [batch..., N, D]",
        "X2: [batch2..., N2, D]",
        "return: [batch..., N, batch2..., N2] if X2 is not None",
        "return: [batch..., N, N] if X2 is None",
    )
    def K(self, X: TensorType, X2: Optional[TensorType] = None) -> tf.Tensor:
        raise NotImplementedError

    @abc.abstractmethod
    @check_shapes(
        "X: [batch..., N, D]",
        "return: [batch..., N]",
    )
    def K_diag(self, X: TensorType) -> tf.Tensor:
        raise NotImplementedError

    @check_shapes(
        "X: [batch..., N, D]",
        "X2: [batch2..., N2, D]",
        "return: [batch..., N, batch2..., N2] if full_cov and (X2 is not None)",
        "return: [batch..., N, N] if full_cov and (X2 is None)",
        "return: [batch..., N] if not full_cov",
    )
    def __call__(
        self,
        X: TensorType,
        X2: Optional[TensorType] = None,
        *,
        full_cov: bool = True,
        presliced: bool = False,
    ) -> tf.Tensor:
        """
        Evaluates the kernel on the active columns: the full covariance
        between X and X2 (or X with itself), or only its diagonal when
        `full_cov` is off.
        """
        if not full_cov and X2 is not None:
            raise ValueError("Ambiguous inputs: `not full_cov` and `X2` are not compatible.")
        if not presliced:
            X, X2 = self.slice(X, X2)
        return self.K(X, X2) if full_cov else self.K_diag(X)

    def __add__(self, other: "Kernel") -> "Kernel":
        return Sum([self, other])

    def __mul__(self, other: "Kernel") -> "Kernel":
        return Product([self, other])


class Combination(Kernel):
    """
    Several kernels merged element-wise by `_combine`. Nesting a combination
    inside one of the same class flattens it, so `k1 + k2 + k3` holds three
    kernels rather than a sum inside a sum.
    """

    def __init__(self, kernels: Sequence[Kernel], name: Optional[str] = None) -> None:
        super().__init__(name=name)
        if not all(isinstance(k, Kernel) for k in kernels):
            raise TypeError("can only combine Kernel instances")  # pragma: no cover

        flattened: List[Kernel] = []
        for kernel in kernels:
            flattened.extend(kernel.kernels if isinstance(kernel, type(self)) else [kernel])
        self.kernels = flattened

    @abc.abstractmethod
    def _combine(self, values: Sequence[tf.Tensor]) -> tf.Tensor:
        raise NotImplementedError

    def __call__(
        self,
        X: TensorType,
        X2: Optional[TensorType] = None,
        *,
        full_cov: bool = True,
        presliced: bool = False,
    ) -> tf.Tensor:
        # Every part slices its own active columns.
        return self._combine(
            [k(X, X2, full_cov=full_cov, presliced=presliced) for k in self.kernels]
        )

    def K(self, X: TensorType, X2: Optional[TensorType] = None) -> tf.Tensor:
        return self._combine([k.K(X, X2) for k in self.kernels])

    def K_diag(self, X: TensorType) -> tf.Tensor:
        return self._combine([k.K_diag(X) for k in self.kernels])


class Sum(Combination):
    def _combine(self, values: Sequence[tf.Tensor]) -> tf.Tensor:
        return tf.add_n(values)


class Product(Combination):
    def _combine(self, values: Sequence[tf.Tensor]) -> tf.Tensor:
        return reduce(tf.multiply, values)
