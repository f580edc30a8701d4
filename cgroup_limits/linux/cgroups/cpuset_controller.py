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

from typing import List, Optional

from cgroup_limits.linux.cgroups.base_controller import BaseController, ControllerType


def parse_cpu_list(cpu_list: str) -> List[int]:
    """
    Expands the kernel's list format, e.g "0-3,8,10-11" into [0, 1, 2, 3, 8, 10, 11].
    :raises ValueError: if the list is malformed
    """
    ids = set()
    for part in filter(None, cpu_list.strip().split(",")):
        if "-" in part:
            first, last = part.split("-", maxsplit=1)
            start, end = int(first), int(last)
            if start > end:
                raise ValueError(f"invalid range {part!r} in {cpu_list!r}")
            ids.update(range(start, end + 1))
        else:
            ids.add(int(part))
    return sorted(ids)


class CpusetController(BaseController):
    CONTROLLER: ControllerType = "cpuset"
    CPUSET_CPUS_FILE = "cpuset.cpus"
    CPUSET_MEMS_FILE = "cpuset.mems"

    def cpus(self) -> Optional[str]:
        return self.read_token(self.CPUSET_CPUS_FILE, "cpuset.cpus")

    def mems(self) -> Optional[str]:
        return self.read_token(self.CPUSET_MEMS_FILE, "cpuset.mems")

    def cpu_ids(self) -> Optional[List[int]]:
        return self._parse(self.cpus())

    def mem_ids(self) -> Optional[List[int]]:
        return self._parse(self.mems())

    def _parse(self, value: Optional[str]) -> Optional[List[int]]:
        if value is None:
            return None
        try:
            return parse_cpu_list(value)
        except ValueError:
            self._logger.debug("Malformed cpuset list", value=value)
            return None
