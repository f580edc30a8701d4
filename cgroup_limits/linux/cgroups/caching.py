#
# Copyright (C) 2023 Intel Corporation
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#

from typing import Callable, Generic, Optional, TypeVar

from cgroup_limits.linux.cgroups.base_controller import BaseController

C = TypeVar("C", bound=BaseController)


class AdjustedController(Generic[C]):
    """
    Holds a controller until it's first used, then replaces it with its adjusted version (once).

    The adjustment is a pure function of immutable inputs, so threads racing on the first get() may each compute it;
    whichever result is published last wins and all results are equivalent. The result is published with a single
    attribute assignment, and only afterwards is the unadjusted controller released.
    """

    def __init__(self, controller: C, adjust: Callable[[C], C]) -> None:
        self._source: Optional[C] = controller
        self._adjust = adjust
        self._adjusted: Optional[C] = None

    @property
    def is_adjusted(self) -> bool:
        return self._adjusted is not None

    def get(self) -> C:
        adjusted = self._adjusted
        if adjusted is not None:
            return adjusted

        source = self._source
        if source is None:
            # Another thread published between our two reads
            adjusted = self._adjusted
            assert adjusted is not None
            return adjusted

        adjusted = self._adjust(source)
        self._adjusted = adjusted
        self._source = None
        return adjusted
