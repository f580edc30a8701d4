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
from typing import Optional


class UnsupportedCGroupV2(Exception):
    def __init__(self):
        super().__init__("cgroup v2 is not supported by cgroup-limits")


class CgroupControllerNotMounted(Exception):
    def __init__(self, controller_name: str):
        super(CgroupControllerNotMounted, self).__init__(f"Controller {controller_name} is not mounted on the system")


class ControlFileError(Exception):
    """
    Raised by the control file readers when a pseudo-file is missing, unreadable or malformed.
    Controllers never let it escape; it is turned into an unsupported reading.
    """

    def __init__(self, path: Optional[Path], reason: str):
        self.path = path
        self.reason = reason
        where = path.as_posix() if path is not None else "<unresolved subsystem path>"
        super().__init__(f"Could not read control file {where}: {reason}")
