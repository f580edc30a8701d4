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

GB = 1024**3
HOST_MEMORY = 16 * GB
HOST_SWAP = 2 * GB
HOST_CPUS = 8

# What the kernel reports for an unlimited memory cgroup
PAGE_COUNTER_MAX = 9223372036854771712


def stat_file(**fields: int) -> str:
    return "\n".join(f"{key} {value}" for key, value in fields.items())
