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

from cgroup_limits.linux.cgroups.base_controller import BaseController  # noqa: F401
from cgroup_limits.linux.cgroups.caching import AdjustedController  # noqa: F401
from cgroup_limits.linux.cgroups.controller_path import ControllerPath, compose  # noqa: F401
from cgroup_limits.linux.cgroups.cpu_controller import CpuController  # noqa: F401
from cgroup_limits.linux.cgroups.cpuacct_controller import CpuAcctController  # noqa: F401
from cgroup_limits.linux.cgroups.cpuset_controller import CpusetController  # noqa: F401
from cgroup_limits.linux.cgroups.discovery import create_subsystem, find_controller_paths  # noqa: F401
from cgroup_limits.linux.cgroups.hierarchy import (  # noqa: F401
    adjust_cpu_controller,
    adjust_memory_controller,
    needs_adjustment,
    processor_count,
)
from cgroup_limits.linux.cgroups.limits import OSCONTAINER_ERROR, UNLIMITED, UNSUPPORTED, LimitReading  # noqa: F401
from cgroup_limits.linux.cgroups.memory_controller import MemoryController  # noqa: F401
from cgroup_limits.linux.cgroups.pids_controller import PidsController  # noqa: F401
from cgroup_limits.linux.cgroups.subsystem import CgroupV1Subsystem  # noqa: F401
