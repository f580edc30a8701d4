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

from pathlib import PurePosixPath
from typing import Callable, List, Optional, TypeVar

from cgroup_limits.linux.cgroups.base_controller import BaseController
from cgroup_limits.linux.cgroups.cpu_controller import CpuController
from cgroup_limits.linux.cgroups.memory_controller import MemoryController
from cgroup_limits.logging import get_logger

C = TypeVar("C", bound=BaseController)

logger = get_logger()


def needs_adjustment(controller: BaseController) -> bool:
    """
    The limits found at the process's own cgroup are authoritative only when that cgroup is the mount root.
    Otherwise (e.g. a systemd slice or a wrapper directory on a host cgroup namespace) an ancestor might carry a
    tighter bound.
    """
    path = controller.path
    if not path.is_resolved or path.cgroup_path is None:
        return False
    return path.root != path.cgroup_path


def _ancestor_cgroup_paths(cgroup_path: str) -> List[str]:
    # "/a/b/c" -> ["/a/b", "/a", "/"]
    return [str(parent) for parent in PurePosixPath(cgroup_path).parents]


def _lowest_in_hierarchy(controller: C, measure: Callable[[C], Optional[int]], initial: int) -> Optional[C]:
    """
    Walks up from controller's cgroup to the mount point, returning the ancestor with the lowest measurement
    below initial, or None if no ancestor has one.
    """
    assert controller.cgroup_path is not None
    lowest = initial
    lowest_controller: Optional[C] = None
    for cgroup_path in _ancestor_cgroup_paths(controller.cgroup_path):
        candidate = controller.with_cgroup_path(cgroup_path)
        value = measure(candidate)
        if value is not None and value < lowest:
            lowest = value
            lowest_controller = candidate
    return lowest_controller


def adjust_memory_controller(controller: MemoryController, host_mem: int) -> MemoryController:
    """
    Returns the controller whose memory limit actually applies to the process: the given one, or a new one bound to
    the ancestor cgroup with the lowest limit.
    """
    if not needs_adjustment(controller):
        return controller

    logger.debug(f"Adjusting controller path for memory: {controller.subsystem_path}")

    def memory_limit(candidate: MemoryController) -> Optional[int]:
        limit = candidate.limit_in_bytes(host_mem)
        return limit.value if limit.is_value else None

    original_limit = memory_limit(controller)
    if original_limit is None:
        original_limit = host_mem
    adjusted = _lowest_in_hierarchy(controller, memory_limit, original_limit)
    if adjusted is None:
        logger.debug(
            f"No lower limit found for memory in hierarchy {controller.path.mount_point}, "
            f"keeping original path {controller.cgroup_path}"
        )
        return controller

    logger.debug(
        f"Adjusted controller path for memory to: {adjusted.subsystem_path}. "
        f"Lowest limit was: {adjusted.limit_in_bytes(host_mem)}"
    )
    return adjusted


def adjust_cpu_controller(controller: CpuController, host_cpus: int) -> CpuController:
    """
    Returns the controller whose CPU quota actually applies to the process: the given one, or a new one bound to the
    ancestor cgroup allowing the fewest processors.
    """
    if not needs_adjustment(controller):
        return controller

    logger.debug(f"Adjusting controller path for cpu: {controller.subsystem_path}")

    def cpu_count(candidate: CpuController) -> Optional[int]:
        return processor_count(candidate, host_cpus)

    adjusted = _lowest_in_hierarchy(controller, cpu_count, processor_count(controller, host_cpus))
    if adjusted is None:
        logger.debug(
            f"No lower limit found for cpu in hierarchy {controller.path.mount_point}, "
            f"keeping original path {controller.cgroup_path}"
        )
        return controller

    logger.debug(
        f"Adjusted controller path for cpu to: {adjusted.subsystem_path}. "
        f"Lowest limit was: {processor_count(adjusted, host_cpus)}"
    )
    return adjusted


def processor_count(cpu_controller: CpuController, host_cpus: int) -> int:
    """
    Number of processors the cgroup's CPU quota allows, never more than host_cpus.
    A fractional quota is rounded up (1.5 CPUs -> 2).
    """
    assert host_cpus > 0, "physical host cpus must be positive"
    params = cpu_controller.limit_params()
    quota = params.quota.as_int()
    period = params.period.as_int()

    quota_count = 0
    if quota > -1 and period > 0:
        quota_count = -(-quota // period)
        logger.debug(f"CPU Quota count based on quota/period: {quota_count}")

    limit_count = quota_count if quota_count != 0 else host_cpus
    result = min(host_cpus, limit_count)
    logger.debug(f"Active processor count: {result}")
    return result
