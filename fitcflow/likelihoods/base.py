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
from typing import Tuple

from ..base import Module


class LikelihoodType(enum.Enum):
    """Observation model families an inference method can be asked to work with."""

    GAUSSIAN = "gaussian"
    STUDENT_T = "student_t"
    LOGIT = "logit"
    PROBIT = "probit"


class Likelihood(Module, abc.ABC):
    """
    A base class for likelihoods, the observation model connecting the latent
    function values to the labels.

    Inference methods only accept likelihood families they have a closed form
    for; they inspect `likelihood_type` rather than the concrete class.
    """

    likelihood_type: LikelihoodType

    @property
    @abc.abstractmethod
    def parameter_names(self) -> Tuple[str, ...]:
        """
        Names of the parameters an inference method may differentiate
        the marginal likelihood against.
        """
        raise NotImplementedError
