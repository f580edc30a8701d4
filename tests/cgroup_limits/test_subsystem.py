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

import threading
from unittest.mock import Mock, patch

from cgroup_limits.host import HostInfo
from cgroup_limits.linux.cgroups.caching import AdjustedController
from cgroup_limits.linux.cgroups.controller_path import CGROUP_V1
from cgroup_limits.linux.cgroups.cpu_controller import CpuController
from cgroup_limits.linux.cgroups.cpuacct_controller import CpuAcctController
from cgroup_limits.linux.cgroups.cpuset_controller import CpusetController
from cgroup_limits.linux.cgroups.limits import OSCONTAINER_ERROR
from cgroup_limits.linux.cgroups.memory_controller import MemoryController
from cgroup_limits.linux.cgroups.pids_controller import PidsController
from cgroup_limits.linux.cgroups.subsystem import MAX_ATTEMPTS_NUMBER, CgroupV1Subsystem
from tests.cgroup_limits.fixtures import GB, HOST_CPUS, HOST_MEMORY, HOST_SWAP, PAGE_COUNTER_MAX, stat_file


def make_subsystem(controller_path, host: HostInfo, cgroup_path: str = "/") -> CgroupV1Subsystem:
    path = controller_path(cgroup_path)
    return CgroupV1Subsystem(
        memory=MemoryController(path),
        cpu=CpuController(path),
        cpuset=CpusetController(path),
        cpuacct=CpuAcctController(path),
        pids=PidsController(path),
        host=host,
    )


def test_subsystem_queries(make_cgroup, controller_path, host):
    make_cgroup(
        "/",
        {
            "memory.limit_in_bytes": 2 * GB,
            "memory.memsw.limit_in_bytes": 3 * GB,
            "memory.swappiness": 60,
            "memory.soft_limit_in_bytes": PAGE_COUNTER_MAX,
            "memory.usage_in_bytes": GB,
            "memory.max_usage_in_bytes": GB + 1,
            "memory.memsw.usage_in_bytes": GB + 100,
            "memory.stat": stat_file(rss=10, cache=20),
            "memory.kmem.usage_in_bytes": 1,
            "memory.kmem.limit_in_bytes": PAGE_COUNTER_MAX,
            "memory.kmem.max_usage_in_bytes": 2,
            "cpu.cfs_quota_us": 150000,
            "cpu.cfs_period_us": 100000,
            "cpu.shares": 1024,
            "cpuacct.usage": 5_000_000,
            "cpuset.cpus": "0-3",
            "cpuset.mems": "0",
            "pids.max": "max",
            "pids.current": 12,
        },
    )
    subsystem = make_subsystem(controller_path, host)

    assert subsystem.container_type() == CGROUP_V1
    assert subsystem.memory_limit_in_bytes() == 2 * GB
    assert subsystem.memory_and_swap_limit_in_bytes() == 3 * GB
    assert subsystem.memory_and_swap_usage_in_bytes() == GB + 100
    assert subsystem.memory_soft_limit_in_bytes() == -1
    assert subsystem.memory_usage_in_bytes() == GB
    assert subsystem.memory_max_usage_in_bytes() == GB + 1
    assert subsystem.rss_usage_in_bytes() == 10
    assert subsystem.cache_usage_in_bytes() == 20
    assert subsystem.version_specific_info() == {
        "kernel_memory_usage_in_bytes": 1,
        "kernel_memory_limit_in_bytes": -1,
        "kernel_memory_max_usage_in_bytes": 2,
    }

    assert subsystem.cpu_quota() == 150000
    assert subsystem.cpu_period() == 100000
    assert subsystem.cpu_shares() == -1
    assert subsystem.active_processor_count() == 2
    assert subsystem.cpu_usage_in_micros() == 5000
    assert subsystem.cpu_cpuset_cpus() == "0-3"
    assert subsystem.cpu_cpuset_memory_nodes() == "0"

    assert subsystem.pids_max() == -1
    assert subsystem.pids_current() == 12

    assert subsystem.total_memory_size() == 2 * GB
    assert subsystem.free_memory_size() == GB
    assert subsystem.total_swap_size() == GB
    assert subsystem.free_swap_size() == GB - 100

    info = subsystem.container_info()
    assert info["active_processor_count"] == 2
    assert info["memory_limit_in_bytes"] == 2 * GB
    assert info["cpuset_cpus"] == "0-3"


def test_subsystem_without_controllers(host):
    subsystem = CgroupV1Subsystem(host=host)
    assert subsystem.memory is None
    assert subsystem.cpu is None
    assert subsystem.memory_limit_in_bytes() == OSCONTAINER_ERROR
    assert subsystem.memory_and_swap_limit_in_bytes() == OSCONTAINER_ERROR
    assert subsystem.memory_usage_in_bytes() == OSCONTAINER_ERROR
    assert subsystem.kernel_memory_limit_in_bytes() == OSCONTAINER_ERROR
    assert subsystem.cpu_quota() == OSCONTAINER_ERROR
    assert subsystem.cpu_shares() == OSCONTAINER_ERROR
    assert subsystem.cpu_usage_in_micros() == OSCONTAINER_ERROR
    assert subsystem.cpu_cpuset_cpus() is None
    assert subsystem.cpu_cpuset_memory_nodes() is None
    assert subsystem.pids_max() == OSCONTAINER_ERROR
    assert subsystem.pids_current() == OSCONTAINER_ERROR
    assert subsystem.active_processor_count() == HOST_CPUS
    assert subsystem.total_memory_size() == HOST_MEMORY
    assert subsystem.total_swap_size() == HOST_SWAP


def test_subsystem_missing_files_are_unsupported(make_cgroup, controller_path, host):
    make_cgroup("/")
    subsystem = make_subsystem(controller_path, host)
    assert subsystem.memory_limit_in_bytes() == OSCONTAINER_ERROR
    assert subsystem.memory_and_swap_limit_in_bytes() == OSCONTAINER_ERROR
    assert subsystem.memory_soft_limit_in_bytes() == OSCONTAINER_ERROR
    assert subsystem.cpu_quota() == OSCONTAINER_ERROR
    assert subsystem.cpu_period() == OSCONTAINER_ERROR
    assert subsystem.pids_max() == OSCONTAINER_ERROR
    assert subsystem.cpu_cpuset_cpus() is None
    assert subsystem.active_processor_count() == HOST_CPUS


def test_swap_without_allowance(make_cgroup, controller_path, host):
    make_cgroup(
        "/",
        {
            "memory.limit_in_bytes": 2 * GB,
            "memory.memsw.limit_in_bytes": 2 * GB,
            "memory.swappiness": 60,
            "memory.usage_in_bytes": GB,
        },
    )
    subsystem = make_subsystem(controller_path, host)
    assert subsystem.total_swap_size() == 0
    assert subsystem.free_swap_size() == 0


def test_undecodable_limit_is_unsupported(make_cgroup, controller_path, host):
    directory = make_cgroup("/", {"memory.usage_in_bytes": GB})
    (directory / "memory.limit_in_bytes").write_bytes(b"\xff\xfe12\n")
    subsystem = make_subsystem(controller_path, host)
    assert subsystem.memory_limit_in_bytes() == OSCONTAINER_ERROR
    assert subsystem.total_memory_size() == HOST_MEMORY


def test_free_memory_is_never_negative(make_cgroup, controller_path, host):
    make_cgroup("/", {"memory.limit_in_bytes": GB, "memory.usage_in_bytes": GB + 4096})
    assert make_subsystem(controller_path, host).free_memory_size() == 0


SWAP_LIMITED_FILES = {
    "memory.limit_in_bytes": 2 * GB,
    "memory.memsw.limit_in_bytes": 3 * GB,
    "memory.swappiness": 60,
}


def test_free_swap_rereads_inconsistent_usage(make_cgroup, controller_path, host):
    make_cgroup("/", SWAP_LIMITED_FILES)
    subsystem = make_subsystem(controller_path, host)
    with patch.object(
        CgroupV1Subsystem, "memory_and_swap_usage_in_bytes", side_effect=[GB - 10, GB + 100]
    ), patch.object(CgroupV1Subsystem, "memory_usage_in_bytes", side_effect=[GB, GB]), patch(
        "cgroup_limits.linux.cgroups.subsystem.psutil"
    ) as psutil_mock:
        assert subsystem.free_swap_size() == GB - 100
        psutil_mock.swap_memory.assert_not_called()


def test_free_swap_falls_back_to_host_after_attempts(make_cgroup, controller_path, host):
    make_cgroup("/", SWAP_LIMITED_FILES)
    subsystem = make_subsystem(controller_path, host)
    with patch.object(
        CgroupV1Subsystem, "memory_and_swap_usage_in_bytes", return_value=GB - 10
    ) as swap_usage, patch.object(CgroupV1Subsystem, "memory_usage_in_bytes", return_value=GB), patch(
        "cgroup_limits.linux.cgroups.subsystem.psutil"
    ) as psutil_mock:
        psutil_mock.swap_memory.return_value = Mock(free=999)
        assert subsystem.free_swap_size() == 999
    assert swap_usage.call_count == MAX_ATTEMPTS_NUMBER


def test_container_view_falls_back_to_host(make_cgroup, controller_path, host):
    make_cgroup("/", {"memory.limit_in_bytes": PAGE_COUNTER_MAX, "memory.usage_in_bytes": GB})
    subsystem = make_subsystem(controller_path, host)
    with patch("cgroup_limits.linux.cgroups.subsystem.psutil") as psutil_mock:
        psutil_mock.virtual_memory.return_value = Mock(available=123)
        psutil_mock.swap_memory.return_value = Mock(free=456)
        assert subsystem.free_memory_size() == 123
        assert subsystem.free_swap_size() == 456
    assert subsystem.total_memory_size() == HOST_MEMORY
    assert subsystem.total_swap_size() == HOST_SWAP


def test_subsystem_uses_adjusted_controllers(make_cgroup, controller_path, host):
    make_cgroup("/", {"memory.limit_in_bytes": PAGE_COUNTER_MAX, "cpu.cfs_quota_us": -1, "cpu.cfs_period_us": 100000})
    make_cgroup("/slice", {"memory.limit_in_bytes": GB, "cpu.cfs_quota_us": 300000, "cpu.cfs_period_us": 100000})
    make_cgroup(
        "/slice/leaf", {"memory.limit_in_bytes": PAGE_COUNTER_MAX, "cpu.cfs_quota_us": -1, "cpu.cfs_period_us": 100000}
    )

    subsystem = make_subsystem(controller_path, host, "/slice/leaf")
    assert subsystem.memory_limit_in_bytes() == GB
    assert subsystem.active_processor_count() == 3
    assert subsystem.cpu_quota() == 300000
    assert subsystem.memory is not None and subsystem.memory.cgroup_path == "/slice"
    assert subsystem.cpu is not None and subsystem.cpu.cgroup_path == "/slice"


def test_adjusted_controller_computes_once(controller_path):
    controller = CpuController(controller_path("/"))
    replacement = CpuController(controller_path("/other"))
    adjust = Mock(return_value=replacement)

    cell = AdjustedController(controller, adjust)
    assert not cell.is_adjusted
    assert cell.get() is replacement
    assert cell.get() is replacement
    assert cell.is_adjusted
    adjust.assert_called_once_with(controller)


def test_adjusted_controller_concurrent_first_use(controller_path):
    controller = CpuController(controller_path("/"))
    barrier = threading.Barrier(8)

    def adjust(c: CpuController) -> CpuController:
        return c.with_cgroup_path("/adjusted")

    cell = AdjustedController(controller, adjust)
    results = []

    def worker() -> None:
        barrier.wait()
        results.append(cell.get())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 8
    assert all(result.cgroup_path == "/adjusted" for result in results)
    assert cell.get().cgroup_path == "/adjusted"
