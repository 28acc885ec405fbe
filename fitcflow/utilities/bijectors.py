# Copyright 2019-2020 The GPflow Contributors. All Rights Reserved.
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

import tensorflow_probability as tfp

from .. import config
from .misc import to_default_float

__all__ = ["positive"]


def positive(lower: Optional[float] = None, base: Optional[str] = None) -> tfp.bijectors.Bijector:
    """
    Bijector mapping the real line onto (lower, ∞).

    :param lower: lower bound; defaults to :func:`fitcflow.config.default_positive_minimum`.
    :param base: "exp" or "softplus"; defaults to
        :func:`fitcflow.config.default_positive_bijector`.
    """
    if base is None:
        base = config.default_positive_bijector()
    if lower is None:
        lower = config.default_positive_minimum()

    bijector = config.positive_bijector_type_map()[base.lower()]()
    if lower == 0.0:
        return bijector
    # Chain applies right to left: positive first, then shifted up.
    return tfp.bijectors.Chain([tfp.bijectors.Shift(to_default_float(lower)), bijector])
