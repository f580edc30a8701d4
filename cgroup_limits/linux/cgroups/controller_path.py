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

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

CGROUP_V1 = "cgroupv1"


def compose(root: Optional[str], mount_point: str, cgroup_path: Optional[str]) -> Optional[str]:
    """
    Builds the directory holding a controller's interface files.

    root - the root of the mounted hierarchy, as seen in mountinfo ('/' on the host, '/docker/<id>' in some containers)
    mount_point - where the hierarchy is mounted, e.g /sys/fs/cgroup/memory
    cgroup_path - the cgroup of the process, as listed in /proc/pid/cgroup

    Returns None when the cgroup of the process is not under the mounted root.
    """
    if root is None or cgroup_path is None:
        return None

    if root == "/":
        if cgroup_path == "/":
            return mount_point
        return mount_point + cgroup_path

    if root == cgroup_path:
        return mount_point

    if cgroup_path.startswith(root) and len(cgroup_path) > len(root):
        return mount_point + cgroup_path[len(root) :]

    # Seen with nested cgroup namespaces: the process's cgroup is outside of the mount root
    return None


@dataclass(frozen=True)
class ControllerPath:
    """
    Location of a cgroup v1 controller for a single process.
    subsystem_path is derived from the other fields once, on construction.
    """

    root: Optional[str]
    mount_point: str
    cgroup_path: Optional[str] = None
    subsystem_path: Optional[str] = field(init=False)
    version: str = field(default=CGROUP_V1, init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "subsystem_path", compose(self.root, self.mount_point, self.cgroup_path))

    @property
    def is_resolved(self) -> bool:
        return self.subsystem_path is not None

    @property
    def directory(self) -> Optional[Path]:
        return Path(self.subsystem_path) if self.subsystem_path is not None else None

    def with_cgroup_path(self, cgroup_path: Optional[str]) -> ControllerPath:
        """Same mount, different cgroup"""
        return ControllerPath(self.root, self.mount_point, cgroup_path)
