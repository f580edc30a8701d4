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

from pathlib import Path
from typing import Dict, Literal, Optional

from typing_extensions import Self

from cgroup_limits.exceptions import ControlFileError
from cgroup_limits.linux.cgroups import control_file
from cgroup_limits.linux.cgroups.controller_path import ControllerPath
from cgroup_limits.linux.cgroups.limits import UNLIMITED, UNSUPPORTED, LimitReading
from cgroup_limits.logging import ControllerLogAdapter, get_logger

ControllerType = Literal["memory", "cpu", "cpuacct", "cpuset", "pids"]


class BaseController:
    """
    Read-only view of a single cgroup v1 controller of a process.
    Every read goes to the filesystem; a missing or malformed file is reported as unsupported, never raised.
    """

    CONTROLLER: ControllerType  # class attribute (should be initialized in inheriting classes)

    def __init__(self, path: ControllerPath) -> None:
        self.path = path
        self._logger = ControllerLogAdapter(get_logger(), self.CONTROLLER, path.subsystem_path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path.subsystem_path!r})"

    @property
    def subsystem_path(self) -> Optional[str]:
        return self.path.subsystem_path

    @property
    def cgroup_path(self) -> Optional[str]:
        return self.path.cgroup_path

    @property
    def directory(self) -> Optional[Path]:
        return self.path.directory

    def with_cgroup_path(self, cgroup_path: str) -> Self:
        """Create a controller of the same kind, bound to another cgroup under the same mount"""
        return type(self)(self.path.with_cgroup_path(cgroup_path))

    def read_int(self, interface_name: str, description: str) -> Optional[int]:
        try:
            value = control_file.read_value(self.directory, interface_name)
        except ControlFileError as e:
            self._logger.debug(f"{description} is: unsupported", reason=e.reason)
            return None
        self._logger.debug(f"{description} is: {value}")
        return value

    def read_token(self, interface_name: str, description: str) -> Optional[str]:
        try:
            token = control_file.read_token(self.directory, interface_name)
        except ControlFileError as e:
            self._logger.debug(f"{description} is: unsupported", reason=e.reason)
            return None
        self._logger.debug(f"{description} is: {token}")
        return token

    def read_stat(self, interface_name: str, description: str) -> Optional[Dict[str, int]]:
        try:
            return control_file.read_stat(self.directory, interface_name)
        except ControlFileError as e:
            self._logger.debug(f"{description} is: unsupported", reason=e.reason)
            return None

    def read_stat_field(self, interface_name: str, key: str, description: str) -> Optional[int]:
        try:
            value = control_file.read_stat_field(self.directory, interface_name, key)
        except ControlFileError as e:
            self._logger.debug(f"{description} is: unsupported", reason=e.reason)
            return None
        self._logger.debug(f"{description} is: {value}")
        return value

    def read_reading(self, interface_name: str, description: str) -> LimitReading:
        return to_reading(self.read_int(interface_name, description))

    def read_bounded_limit(self, interface_name: str, description: str, upper_bound: int) -> LimitReading:
        """
        Reads a limit file. Values at or above upper_bound can't be real bounds on this host, so they are unlimited.
        """
        value = self.read_int(interface_name, description)
        if value is None:
            return UNSUPPORTED
        if exceeds(value, upper_bound):
            self._logger.debug(f"{description} is: unlimited")
            return UNLIMITED
        return LimitReading.of(value)


def exceeds(value: int, upper_bound: int) -> bool:
    # -1 is how userspace tools report "no limit"
    return value < 0 or value >= upper_bound


def to_reading(value: Optional[int]) -> LimitReading:
    if value is None:
        return UNSUPPORTED
    if value < 0:
        return UNLIMITED
    return LimitReading.of(value)
