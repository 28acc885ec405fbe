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
Exceptions raised by fitcflow.

Both kinds of failure are fatal for the call that raises them: nothing is
retried and no fallback is attempted. A :class:`NumericalError` raised during
an update leaves the previously cached factorization untouched, so the caller
can adjust hyperparameters (e.g. raise the noise floor) and query again.
"""

__all__ = ["ConfigurationError", "FITCError", "NumericalError"]


class FITCError(Exception):
    """Base class of the exceptions raised by fitcflow."""


class ConfigurationError(FITCError, ValueError):
    """
    The inference method was set up with collaborators it cannot work with
    (a non-Gaussian likelihood, non-regression labels, mismatched data), or a
    derivative was requested for a parameter it does not know about.
    """


class NumericalError(FITCError, ArithmeticError):
    """
    A Cholesky factorization met a matrix that is not positive definite, or
    the FITC diagonal correction has a non-positive entry.
    """
