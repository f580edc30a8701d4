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

from functools import partial
from typing import Dict, Optional, Union

import psutil

from cgroup_limits.host import HostInfo
from cgroup_limits.linux.cgroups.caching import AdjustedController
from cgroup_limits.linux.cgroups.controller_path import CGROUP_V1
from cgroup_limits.linux.cgroups.cpu_controller import CpuController
from cgroup_limits.linux.cgroups.cpuacct_controller import CpuAcctController
from cgroup_limits.linux.cgroups.cpuset_controller import CpusetController
from cgroup_limits.linux.cgroups.hierarchy import adjust_cpu_controller, adjust_memory_controller, processor_count
from cgroup_limits.linux.cgroups.limits import OSCONTAINER_ERROR
from cgroup_limits.linux.cgroups.memory_controller import MemoryController
from cgroup_limits.linux.cgroups.pids_controller import PidsController

MAX_ATTEMPTS_NUMBER = 10


class CgroupV1Subsystem:
    """
    Answers resource queries for a process in a cgroup v1 hierarchy.

    Integer results follow one convention: a non-negative value, -1 when there is no limit, or OSCONTAINER_ERROR
    when the value can't be determined (controller absent, file missing or unreadable).
    The memory and cpu controllers are adjusted to the authoritative level of the hierarchy on first use.
    """

    def __init__(
        self,
        memory: Optional[MemoryController] = None,
        cpu: Optional[CpuController] = None,
        cpuset: Optional[CpusetController] = None,
        cpuacct: Optional[CpuAcctController] = None,
        pids: Optional[PidsController] = None,
        host: Optional[HostInfo] = None,
    ) -> None:
        self.host = host if host is not None else HostInfo.from_host()
        self._memory = (
            AdjustedController(memory, partial(adjust_memory_controller, host_mem=self.host.physical_memory))
            if memory is not None
            else None
        )
        self._cpu = (
            AdjustedController(cpu, partial(adjust_cpu_controller, host_cpus=self.host.cpu_count))
            if cpu is not None
            else None
        )
        self.cpuset = cpuset
        self.cpuacct = cpuacct
        self.pids = pids

    def container_type(self) -> str:
        return CGROUP_V1

    @property
    def memory(self) -> Optional[MemoryController]:
        return self._memory.get() if self._memory is not None else None

    @property
    def cpu(self) -> Optional[CpuController]:
        return self._cpu.get() if self._cpu is not None else None

    # memory

    def memory_limit_in_bytes(self) -> int:
        memory = self.memory
        if memory is None:
            return OSCONTAINER_ERROR
        return memory.limit_in_bytes(self.host.physical_memory).as_int()

    def memory_and_swap_limit_in_bytes(self) -> int:
        memory = self.memory
        if memory is None:
            return OSCONTAINER_ERROR
        return memory.memory_and_swap_limit_in_bytes(self.host.physical_memory, self.host.swap_total).as_int()

    def memory_and_swap_usage_in_bytes(self) -> int:
        memory = self.memory
        if memory is None:
            return OSCONTAINER_ERROR
        return memory.memory_and_swap_usage_in_bytes(self.host.physical_memory, self.host.swap_total).as_int()

    def memory_soft_limit_in_bytes(self) -> int:
        memory = self.memory
        if memory is None:
            return OSCONTAINER_ERROR
        return memory.soft_limit_in_bytes(self.host.physical_memory).as_int()

    def memory_usage_in_bytes(self) -> int:
        memory = self.memory
        return memory.usage_in_bytes().as_int() if memory is not None else OSCONTAINER_ERROR

    def memory_max_usage_in_bytes(self) -> int:
        memory = self.memory
        return memory.max_usage_in_bytes().as_int() if memory is not None else OSCONTAINER_ERROR

    def rss_usage_in_bytes(self) -> int:
        memory = self.memory
        return memory.rss_usage_in_bytes().as_int() if memory is not None else OSCONTAINER_ERROR

    def cache_usage_in_bytes(self) -> int:
        memory = self.memory
        return memory.cache_usage_in_bytes().as_int() if memory is not None else OSCONTAINER_ERROR

    def kernel_memory_usage_in_bytes(self) -> int:
        memory = self.memory
        return memory.kernel_memory_usage_in_bytes().as_int() if memory is not None else OSCONTAINER_ERROR

    def kernel_memory_limit_in_bytes(self) -> int:
        memory = self.memory
        if memory is None:
            return OSCONTAINER_ERROR
        return memory.kernel_memory_limit_in_bytes(self.host.physical_memory).as_int()

    def kernel_memory_max_usage_in_bytes(self) -> int:
        memory = self.memory
        return memory.kernel_memory_max_usage_in_bytes().as_int() if memory is not None else OSCONTAINER_ERROR

    # cpu

    def cpu_quota(self) -> int:
        cpu = self.cpu
        return cpu.quota().as_int() if cpu is not None else OSCONTAINER_ERROR

    def cpu_period(self) -> int:
        cpu = self.cpu
        return cpu.period().as_int() if cpu is not None else OSCONTAINER_ERROR

    def cpu_shares(self) -> int:
        cpu = self.cpu
        return cpu.shares().as_int() if cpu is not None else OSCONTAINER_ERROR

    def active_processor_count(self) -> int:
        """
        Number of processors the process should plan for; the host count when there's no cpu controller.
        """
        cpu = self.cpu
        if cpu is None:
            return self.host.cpu_count
        return processor_count(cpu, self.host.cpu_count)

    def cpu_usage_in_micros(self) -> int:
        if self.cpuacct is None:
            return OSCONTAINER_ERROR
        usage = self.cpuacct.usage_in_nanos()
        return usage.value // 1000 if usage.is_value else usage.as_int()

    def cpu_cpuset_cpus(self) -> Optional[str]:
        return self.cpuset.cpus() if self.cpuset is not None else None

    def cpu_cpuset_memory_nodes(self) -> Optional[str]:
        return self.cpuset.mems() if self.cpuset is not None else None

    # pids

    def pids_max(self) -> int:
        return self.pids.max().as_int() if self.pids is not None else OSCONTAINER_ERROR

    def pids_current(self) -> int:
        return self.pids.current().as_int() if self.pids is not None else OSCONTAINER_ERROR

    # container view, falling back to the host when the container reports no limit

    def total_memory_size(self) -> int:
        limit = self.memory_limit_in_bytes()
        return limit if limit >= 0 else self.host.physical_memory

    def free_memory_size(self) -> int:
        usage = self.memory_usage_in_bytes()
        limit = self.memory_limit_in_bytes()
        if usage > 0 and limit >= 0:
            return max(limit - usage, 0)
        return psutil.virtual_memory().available

    def total_swap_size(self) -> int:
        memory_swap_limit = self.memory_and_swap_limit_in_bytes()
        memory_limit = self.memory_limit_in_bytes()
        if memory_swap_limit >= 0 and memory_limit >= 0:
            # 0 when swap isn't allowed (memory_swap_limit == memory_limit)
            return max(memory_swap_limit - memory_limit, 0)
        return self.host.swap_total

    def free_swap_size(self) -> int:
        memory_swap_limit = self.memory_and_swap_limit_in_bytes()
        memory_limit = self.memory_limit_in_bytes()
        if memory_swap_limit >= 0 and memory_limit >= 0:
            delta_limit = memory_swap_limit - memory_limit
            if delta_limit <= 0:
                return 0
            # The two usages are read separately and may be inconsistent, so they are read again a bounded number of
            # times before falling back to the host value
            for _ in range(MAX_ATTEMPTS_NUMBER):
                memory_swap_usage = self.memory_and_swap_usage_in_bytes()
                memory_usage = self.memory_usage_in_bytes()
                if memory_swap_usage > 0 and memory_usage > 0:
                    delta_usage = memory_swap_usage - memory_usage
                    if 0 <= delta_usage <= delta_limit:
                        return delta_limit - delta_usage
        return psutil.swap_memory().free

    def version_specific_info(self) -> Dict[str, int]:
        return {
            "kernel_memory_usage_in_bytes": self.kernel_memory_usage_in_bytes(),
            "kernel_memory_limit_in_bytes": self.kernel_memory_limit_in_bytes(),
            "kernel_memory_max_usage_in_bytes": self.kernel_memory_max_usage_in_bytes(),
        }

    def container_info(self) -> Dict[str, Union[int, str, None]]:
        """
        Snapshot of every metric, e.g for logging at startup.
        """
        return {
            "container_type": self.container_type(),
            "cpuset_cpus": self.cpu_cpuset_cpus(),
            "cpuset_mems": self.cpu_cpuset_memory_nodes(),
            "active_processor_count": self.active_processor_count(),
            "cpu_quota": self.cpu_quota(),
            "cpu_period": self.cpu_period(),
            "cpu_shares": self.cpu_shares(),
            "memory_limit_in_bytes": self.memory_limit_in_bytes(),
            "memory_and_swap_limit_in_bytes": self.memory_and_swap_limit_in_bytes(),
            "memory_soft_limit_in_bytes": self.memory_soft_limit_in_bytes(),
            "memory_usage_in_bytes": self.memory_usage_in_bytes(),
            "memory_max_usage_in_bytes": self.memory_max_usage_in_bytes(),
            "rss_usage_in_bytes": self.rss_usage_in_bytes(),
            "cache_usage_in_bytes": self.cache_usage_in_bytes(),
            **self.version_specific_info(),
            "pids_max": self.pids_max(),
            "pids_current": self.pids_current(),
        }
