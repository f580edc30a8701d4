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

from pathlib import Path
from typing import Callable, Mapping

import pytest

from cgroup_limits.host import HostInfo
from cgroup_limits.linux.cgroups.controller_path import ControllerPath
from tests.cgroup_limits.fixtures import HOST_CPUS, HOST_MEMORY, HOST_SWAP

CgroupFactory = Callable[..., Path]


@pytest.fixture
def host() -> HostInfo:
    return HostInfo(physical_memory=HOST_MEMORY, swap_total=HOST_SWAP, cpu_count=HOST_CPUS)


@pytest.fixture
def mount_point(tmp_path: Path) -> Path:
    return tmp_path / "mnt"


@pytest.fixture
def make_cgroup(mount_point: Path) -> CgroupFactory:
    """
    Creates a cgroup directory under the fake mount point and fills in its interface files.
    """

    def _make_cgroup(cgroup_path: str = "/", files: Mapping[str, object] = None) -> Path:
        directory = mount_point / cgroup_path.lstrip("/")
        directory.mkdir(parents=True, exist_ok=True)
        for name, content in (files or {}).items():
            (directory / name).write_text(f"{content}\n")
        return directory

    return _make_cgroup


@pytest.fixture
def controller_path(mount_point: Path) -> Callable[[str], ControllerPath]:
    def _controller_path(cgroup_path: str = "/") -> ControllerPath:
        return ControllerPath("/", str(mount_point), cgroup_path)

    return _controller_path
