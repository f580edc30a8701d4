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

import os
from contextlib import contextmanager
from typing import Dict, Generator, List, Mapping, Optional, Tuple

import psutil

from cgroup_limits.exceptions import CgroupControllerNotMounted, UnsupportedCGroupV2
from cgroup_limits.host import HostInfo
from cgroup_limits.linux.cgroups.base_controller import ControllerType
from cgroup_limits.linux.cgroups.controller_path import ControllerPath
from cgroup_limits.linux.cgroups.cpu_controller import CpuController
from cgroup_limits.linux.cgroups.cpuacct_controller import CpuAcctController
from cgroup_limits.linux.cgroups.cpuset_controller import CpusetController
from cgroup_limits.linux.cgroups.memory_controller import MemoryController
from cgroup_limits.linux.cgroups.pids_controller import PidsController
from cgroup_limits.linux.cgroups.subsystem import CgroupV1Subsystem
from cgroup_limits.linux.mountinfo import PROC_ROOT, iter_cgroup_v1_mounts, iter_mountinfo
from cgroup_limits.logging import get_logger

CONTROLLERS: Tuple[ControllerType, ...] = ("memory", "cpu", "cpuacct", "cpuset", "pids")

logger = get_logger()


class ProcCgroupLine:
    """
    The format of the line:  hierarchy-ID:controller-list:relative-path
    Example line: 4:cpu,cpuacct:/docker/<id>

    relative-path - the path of the cgroup the process belongs to, relative to the root of the hierarchy.
    The unified (v2) hierarchy is listed with hierarchy-ID 0 and an empty controller list.
    """

    hier_id: str
    controllers: List[str]
    relative_path: str

    def __init__(self, procfs_line: str):
        hier_id, controller_list, relative_path = procfs_line.split(":", maxsplit=2)
        self.hier_id = hier_id
        self.controllers = controller_list.split(",") if controller_list else []
        self.relative_path = relative_path

    @property
    def is_unified(self) -> bool:
        return self.hier_id == "0"


@contextmanager
def translate_proc_errors(process: psutil.Process) -> Generator[None, None, None]:
    try:
        yield
        # Don't use the result if PID has been reused
        if not process.is_running():
            raise psutil.NoSuchProcess(process.pid)
    except PermissionError:
        raise psutil.AccessDenied(process.pid)
    except ProcessLookupError:
        raise psutil.NoSuchProcess(process.pid)
    except FileNotFoundError:
        if not os.path.exists(f"{PROC_ROOT}/{process.pid}"):
            raise psutil.NoSuchProcess(process.pid)
        raise


def read_proc_file(process: psutil.Process, name: str) -> bytes:
    with translate_proc_errors(process):
        with open(f"{PROC_ROOT}/{process.pid}/{name}", "rb") as f:
            return f.read()


def get_process_cgroups(process: Optional[psutil.Process] = None) -> List[ProcCgroupLine]:
    """
    Get the cgroups of a process in [(hier id., controllers, path)] parsed form.
    If process is None, gets the cgroups of the current process.
    """
    process = process or psutil.Process()
    text = read_proc_file(process, "cgroup").decode()
    return [ProcCgroupLine(line) for line in text.splitlines() if line]


def find_v1_hierarchies(process: Optional[psutil.Process] = None) -> Mapping[str, Tuple[str, str]]:
    """
    Finds all the mounted hierarchies for the cgroup v1 controllers we read.
    :return: A mapping from controller names to (mount point, mount root).
    """
    hierarchies = {}
    for mount in iter_cgroup_v1_mounts(iter_mountinfo(process)):
        for controller in set(mount.super_options) & set(CONTROLLERS):
            hierarchies[controller] = (mount.mount_point, mount.root)
    return hierarchies


def _mount_point_for(process: Optional[psutil.Process], mount_point: str) -> str:
    # Mount points of another process are relative to its root, which may be a different mount namespace
    if process is None or process.pid == os.getpid():
        return mount_point
    return f"{PROC_ROOT}/{process.pid}/root{mount_point}"


def find_controller_paths(process: Optional[psutil.Process] = None) -> Dict[ControllerType, ControllerPath]:
    """
    Builds a ControllerPath for every cgroup v1 controller that is both mounted and listed for the process.
    :raises UnsupportedCGroupV2: if the process is only in the unified hierarchy.
    """
    cgroups = get_process_cgroups(process)
    if all(line.is_unified for line in cgroups):
        raise UnsupportedCGroupV2()

    hierarchies = find_v1_hierarchies(process)
    paths: Dict[ControllerType, ControllerPath] = {}
    for controller in CONTROLLERS:
        if controller not in hierarchies:
            logger.debug(f"{controller!r} controller is not mounted")
            continue
        mount_point, root = hierarchies[controller]
        cgroup_path = next((line.relative_path for line in cgroups if controller in line.controllers), None)
        path = ControllerPath(root, _mount_point_for(process, mount_point), cgroup_path)
        if not path.is_resolved:
            logger.debug(
                f"cgroup {cgroup_path!r} of the {controller!r} controller is outside of mount root {root!r}"
            )
        paths[controller] = path
    return paths


def create_subsystem(
    process: Optional[psutil.Process] = None, host: Optional[HostInfo] = None
) -> CgroupV1Subsystem:
    """
    Creates a CgroupV1Subsystem for process (default: current process).
    :raises UnsupportedCGroupV2: if the process is only in the unified hierarchy.
    :raises CgroupControllerNotMounted: if none of the controllers is mounted.
    """
    paths = find_controller_paths(process)
    if not paths:
        raise CgroupControllerNotMounted(controller_name=",".join(CONTROLLERS))

    memory = paths.get("memory")
    cpu = paths.get("cpu")
    cpuacct = paths.get("cpuacct")
    cpuset = paths.get("cpuset")
    pids = paths.get("pids")
    return CgroupV1Subsystem(
        memory=MemoryController(memory) if memory is not None else None,
        cpu=CpuController(cpu) if cpu is not None else None,
        cpuset=CpusetController(cpuset) if cpuset is not None else None,
        cpuacct=CpuAcctController(cpuacct) if cpuacct is not None else None,
        pids=PidsController(pids) if pids is not None else None,
        host=host if host is not None else HostInfo.from_host(process),
    )
