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

from dataclasses import dataclass
from typing import Dict

from cgroup_limits.linux.cgroups.base_controller import BaseController, ControllerType, to_reading
from cgroup_limits.linux.cgroups.limits import UNLIMITED, UNSUPPORTED, LimitReading

# The kernel's default cpu.shares; a cgroup that was never configured reports it
DEFAULT_CPU_SHARES = 1024


@dataclass
class CpuLimitParams:
    period: LimitReading
    quota: LimitReading


class CpuController(BaseController):
    CONTROLLER: ControllerType = "cpu"

    CPU_PERIOD_FILE = "cpu.cfs_period_us"
    CPU_QUOTA_FILE = "cpu.cfs_quota_us"
    CPU_SHARES_FILE = "cpu.shares"
    CPU_STAT_FILE = "cpu.stat"

    def quota(self) -> LimitReading:
        """
        Microseconds per period the cgroup may run. Unlimited when no quota is set (-1).
        """
        return to_reading(self.read_int(self.CPU_QUOTA_FILE, "CPU Quota"))

    def period(self) -> LimitReading:
        return to_reading(self.read_int(self.CPU_PERIOD_FILE, "CPU Period"))

    def limit_params(self) -> CpuLimitParams:
        # Two separate reads: a concurrent change between them is not detected
        return CpuLimitParams(period=self.period(), quota=self.quota())

    def shares(self) -> LimitReading:
        """
        Returns the cpu shares of the cgroup (relative to 1024, 2048 is typically two CPUs worth).
        The kernel default of 1024 is reported as unlimited (-1), i.e. no shares configured.
        """
        shares = self.read_int(self.CPU_SHARES_FILE, "CPU Shares")
        if shares is None:
            return UNSUPPORTED
        if shares == DEFAULT_CPU_SHARES or shares < 0:
            return UNLIMITED
        return LimitReading.of(shares)

    def stat(self) -> Dict[str, int]:
        return self.read_stat(self.CPU_STAT_FILE, "CPU Stat") or {}

    def _stat_reading(self, key: str, description: str) -> LimitReading:
        return to_reading(self.read_stat_field(self.CPU_STAT_FILE, key, description))

    def num_periods(self) -> LimitReading:
        return self._stat_reading("nr_periods", "CPU Periods")

    def num_throttled(self) -> LimitReading:
        return self._stat_reading("nr_throttled", "CPU Throttled Periods")

    def throttled_time(self) -> LimitReading:
        return self._stat_reading("throttled_time", "CPU Throttled Time")
