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

from cgroup_limits.linux.cgroups.base_controller import BaseController, ControllerType, exceeds
from cgroup_limits.linux.cgroups.controller_path import ControllerPath
from cgroup_limits.linux.cgroups.limits import UNLIMITED, UNSUPPORTED, LimitReading


class MemoryController(BaseController):
    CONTROLLER: ControllerType = "memory"

    MEMORY_LIMIT_FILE = "memory.limit_in_bytes"
    MEMORY_USAGE_FILE = "memory.usage_in_bytes"
    MEMORY_MAX_USAGE_IN_BYTES_FILE = "memory.max_usage_in_bytes"
    MEMORY_SOFT_LIMIT_FILE = "memory.soft_limit_in_bytes"
    MEMORY_SWAP_LIMIT_FILE = "memory.memsw.limit_in_bytes"
    MEMORY_SWAP_USAGE_FILE = "memory.memsw.usage_in_bytes"
    MEMORY_SWAPPINESS_FILE = "memory.swappiness"
    MEMORY_USE_HIERARCHY_FILE = "memory.use_hierarchy"
    MEMORY_STAT_FILE = "memory.stat"
    KMEM_USAGE_FILE = "memory.kmem.usage_in_bytes"
    KMEM_LIMIT_FILE = "memory.kmem.limit_in_bytes"
    KMEM_MAX_USAGE_FILE = "memory.kmem.max_usage_in_bytes"

    HIERARCHICAL_MEMORY_LIMIT = "hierarchical_memory_limit"
    HIERARCHICAL_MEMSW_LIMIT = "hierarchical_memsw_limit"

    def __init__(self, path: ControllerPath) -> None:
        super().__init__(path)
        # With hierarchical accounting, limits set on an ancestor apply to this cgroup as well
        use_hierarchy = self.read_int(self.MEMORY_USE_HIERARCHY_FILE, "Use Hierarchy")
        self.hierarchical = use_hierarchy is not None and use_hierarchy > 0

    def _read_hierarchical_limit(
        self, interface_name: str, stat_key: str, description: str, upper_bound: int
    ) -> LimitReading:
        value = self.read_int(interface_name, description)
        if value is None:
            return UNSUPPORTED
        if not exceeds(value, upper_bound):
            return LimitReading.of(value)

        self._logger.debug(f"Non-Hierarchical {description} is: unlimited")
        if not self.hierarchical:
            return UNLIMITED

        hierarchical_value = self.read_stat_field(self.MEMORY_STAT_FILE, stat_key, f"Hierarchical {description}")
        if hierarchical_value is None:
            return UNSUPPORTED
        if exceeds(hierarchical_value, upper_bound):
            self._logger.debug(f"Hierarchical {description} is: unlimited")
            return UNLIMITED
        return LimitReading.of(hierarchical_value)

    def limit_in_bytes(self, host_mem: int) -> LimitReading:
        """
        Returns the memory limit of the cgroup.
        :param host_mem: physical memory of the host, any limit at or above it is reported as unlimited.
        """
        return self._read_hierarchical_limit(
            self.MEMORY_LIMIT_FILE, self.HIERARCHICAL_MEMORY_LIMIT, "Memory Limit", host_mem
        )

    def swap_limit_in_bytes(self, host_mem: int, host_swap: int) -> LimitReading:
        """
        Returns the memory + swap limit as configured, without considering swappiness.
        """
        return self._read_hierarchical_limit(
            self.MEMORY_SWAP_LIMIT_FILE, self.HIERARCHICAL_MEMSW_LIMIT, "Memory and Swap Limit", host_mem + host_swap
        )

    def swappiness(self) -> LimitReading:
        value = self.read_int(self.MEMORY_SWAPPINESS_FILE, "Swappiness")
        # the kernel never reports a negative swappiness
        return UNSUPPORTED if value is None or value < 0 else LimitReading.of(value)

    def memory_and_swap_limit_in_bytes(self, host_mem: int, host_swap: int) -> LimitReading:
        memory_swap = self.swap_limit_in_bytes(host_mem, host_swap)
        if memory_swap.is_unlimited:
            return memory_swap

        # A swap limit is meaningless when the cgroup never swaps (swappiness 0) or when the kernel has no swap
        # accounting; fall back to the memory limit in both cases.
        swappiness = self.swappiness()
        if memory_swap.is_unsupported or (swappiness.is_value and swappiness.value == 0):
            memory_limit = self.limit_in_bytes(host_mem)
            reason = "swap is not supported" if memory_swap.is_unsupported else "swappiness is 0"
            self._logger.debug(f"Memory and Swap Limit has been reset to {memory_limit} because {reason}")
            return memory_limit
        return memory_swap

    def memory_and_swap_usage_in_bytes(self, host_mem: int, host_swap: int) -> LimitReading:
        memory_swap_limit = self.memory_and_swap_limit_in_bytes(host_mem, host_swap)
        memory_limit = self.limit_in_bytes(host_mem)
        if (
            memory_swap_limit.is_value
            and memory_limit.is_value
            and memory_swap_limit.value > 0
            and memory_limit.value > 0
            and memory_swap_limit.value - memory_limit.value > 0
        ):
            return self.read_reading(self.MEMORY_SWAP_USAGE_FILE, "Memory and Swap Usage")
        return self.usage_in_bytes()

    def soft_limit_in_bytes(self, host_mem: int) -> LimitReading:
        return self.read_bounded_limit(self.MEMORY_SOFT_LIMIT_FILE, "Memory Soft Limit", host_mem)

    def usage_in_bytes(self) -> LimitReading:
        return self.read_reading(self.MEMORY_USAGE_FILE, "Memory Usage")

    def max_usage_in_bytes(self) -> LimitReading:
        return self.read_reading(self.MEMORY_MAX_USAGE_IN_BYTES_FILE, "Maximum Memory Usage")

    def _stat_reading(self, key: str, description: str) -> LimitReading:
        value = self.read_stat_field(self.MEMORY_STAT_FILE, key, description)
        return UNSUPPORTED if value is None or value < 0 else LimitReading.of(value)

    def rss_usage_in_bytes(self) -> LimitReading:
        return self._stat_reading("rss", "RSS usage")

    def cache_usage_in_bytes(self) -> LimitReading:
        return self._stat_reading("cache", "Cache usage")

    def kernel_memory_usage_in_bytes(self) -> LimitReading:
        return self.read_reading(self.KMEM_USAGE_FILE, "Kernel Memory Usage")

    def kernel_memory_limit_in_bytes(self, host_mem: int) -> LimitReading:
        return self.read_bounded_limit(self.KMEM_LIMIT_FILE, "Kernel Memory Limit", host_mem)

    def kernel_memory_max_usage_in_bytes(self) -> LimitReading:
        return self.read_reading(self.KMEM_MAX_USAGE_FILE, "Maximum Kernel Memory Usage")
