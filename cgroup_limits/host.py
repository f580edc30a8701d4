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

from typing import NamedTuple, Optional

import psutil


class HostInfo(NamedTuple):
    """
    Host-wide hints used to tell real cgroup bounds from "unlimited" placeholders.
    """

    physical_memory: int
    swap_total: int
    cpu_count: int

    @classmethod
    def from_host(cls, process: Optional[psutil.Process] = None) -> "HostInfo":
        return cls(
            physical_memory=psutil.virtual_memory().total,
            swap_total=psutil.swap_memory().total,
            cpu_count=active_host_cpu_count(process),
        )


def active_host_cpu_count(process: Optional[psutil.Process] = None) -> int:
    """
    Number of CPUs the process may be scheduled on, ignoring cgroup CPU bandwidth limits.
    """
    process = process or psutil.Process()
    try:
        affinity = process.cpu_affinity()
    except (AttributeError, psutil.Error):
        # cpu_affinity() is not available on every platform
        affinity = None
    if affinity:
        return len(affinity)
    return psutil.cpu_count() or 1
