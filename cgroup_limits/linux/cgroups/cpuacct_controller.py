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

from cgroup_limits.linux.cgroups.base_controller import BaseController, ControllerType
from cgroup_limits.linux.cgroups.limits import LimitReading


class CpuAcctController(BaseController):
    CONTROLLER: ControllerType = "cpuacct"
    CPUACCT_USAGE_FILE = "cpuacct.usage"

    def usage_in_nanos(self) -> LimitReading:
        return self.read_reading(self.CPUACCT_USAGE_FILE, "CPU Usage")
