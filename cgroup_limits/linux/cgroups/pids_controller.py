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

from cgroup_limits.linux.cgroups.base_controller import BaseController, ControllerType, to_reading
from cgroup_limits.linux.cgroups.limits import UNLIMITED, UNSUPPORTED, LimitReading

PIDS_UNBOUNDED_VALUE = "max"


class PidsController(BaseController):
    CONTROLLER: ControllerType = "pids"
    PIDS_MAX_FILE = "pids.max"
    PIDS_CURRENT_FILE = "pids.current"

    def max(self) -> LimitReading:
        """
        Maximum number of tasks in the cgroup, unlimited when set to "max".
        """
        value = self.read_token(self.PIDS_MAX_FILE, "Maximum number of tasks")
        if value is None:
            return UNSUPPORTED
        if value == PIDS_UNBOUNDED_VALUE:
            return UNLIMITED
        try:
            return to_reading(int(value))
        except ValueError:
            self._logger.debug("Malformed pids.max", value=value)
            return UNSUPPORTED

    def current(self) -> LimitReading:
        return self.read_reading(self.PIDS_CURRENT_FILE, "Current number of tasks")
