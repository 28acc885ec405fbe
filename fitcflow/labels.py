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

"""
Label containers. An inference method checks `label_type` to make sure the
labels fit its likelihood: FITC regression only accepts
:class:`RegressionLabels`.
"""

import enum
from typing import Any, Union

import numpy as np
import tensorflow as tf
from check_shapes import check_shapes

from .base import Module, OutputData
from .utilities import to_default_float


class LabelType(enum.Enum):
    REGRESSION = "regression"
    BINARY = "binary"


class Labels(Module):
    """
    Holds an [N, 1] column of labels. Stored as a tensor unless a
    `tf.Variable` is passed in, in which case the labels can be reassigned in
    place and the inference method notices the change.
    """

    label_type: LabelType

    def __init__(self, values: OutputData, name: Any = None) -> None:
        super().__init__(name=name)
        if not isinstance(values, tf.Variable):
            values = to_default_float(values)
        if values.shape.rank != 2 or values.shape[-1] != 1:
            raise ValueError(f"Labels must have shape [N, 1], got {values.shape}")
        self.values = values

    @property
    def num_labels(self) -> int:
        return int(self.values.shape[0])

    @check_shapes(
        "return: [N]",
    )
    def get_labels(self) -> tf.Tensor:
        return tf.convert_to_tensor(self.values)[:, 0]


class RegressionLabels(Labels):
    """Real-valued labels."""

    label_type = LabelType.REGRESSION


class BinaryLabels(Labels):
    """Labels in {-1, +1}."""

    label_type = LabelType.BINARY

    def __init__(self, values: OutputData, name: Any = None) -> None:
        super().__init__(values, name=name)
        if not np.all(np.isin(tf.convert_to_tensor(self.values).numpy(), [-1.0, 1.0])):
            raise ValueError("Binary labels must be -1 or +1")


def as_labels(values: Union[Labels, OutputData]) -> Labels:
    """ Wraps raw arrays as :class:`RegressionLabels`; passes :class:`Labels` through. """
    if isinstance(values, Labels):
        return values
    return RegressionLabels(values)
