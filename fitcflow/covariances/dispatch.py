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
Covariance blocks between inducing variables and data, dispatched on the
type of inducing variable and kernel:

* ``Kuu(inducing_variable, kernel, *, jitter=0.0)``: ``[M, M]``
* ``Kuf(inducing_variable, kernel, Xnew)``: ``[M, N]``
"""

from ..utilities import Dispatcher

Kuu = Dispatcher("Kuu")
Kuf = Dispatcher("Kuf")
