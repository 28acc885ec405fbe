# Copyright 2022 The GPflow Contributors. All Rights Reserved.
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
from typing import Iterable

import pytest
from check_shapes.config import (
    ShapeCheckingState,
    get_enable_check_shapes,
    set_enable_check_shapes,
)


@pytest.fixture(autouse=True)
def enable_shape_checks() -> Iterable[None]:
    # Shape checks are part of what the tests verify; restore whatever a test changes.
    old_enable = get_enable_check_shapes()
    set_enable_check_shapes(ShapeCheckingState.ENABLED)
    yield
    set_enable_check_shapes(old_enable)
