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
from typing import Dict, Optional

from cgroup_limits.exceptions import ControlFileError

# cpuset.cpus and friends are read into a bounded buffer by the kernel interfaces we mirror
MAX_TOKEN_LENGTH = 1023


def read_text(directory: Optional[Path], name: str) -> str:
    if directory is None:
        raise ControlFileError(None, f"{name}: subsystem path is unresolved")
    path = directory / name
    try:
        content = path.read_text().strip()
    except OSError as e:
        raise ControlFileError(path, e.strerror or type(e).__name__) from e
    except UnicodeDecodeError as e:
        raise ControlFileError(path, "invalid encoding") from e
    if not content:
        raise ControlFileError(path, "empty file")
    return content


def read_token(directory: Optional[Path], name: str) -> str:
    """
    Reads the first whitespace separated token of a control file.
    """
    return read_text(directory, name).split()[0][:MAX_TOKEN_LENGTH]


def read_value(directory: Optional[Path], name: str) -> int:
    token = read_token(directory, name)
    try:
        return int(token)
    except ValueError as e:
        raise ControlFileError(directory / name if directory else None, f"not an integer: {token!r}") from e


def parse_stat(text: str) -> Dict[str, int]:
    """
    Parses a multi-line "<key> <value>" table (memory.stat, cpu.stat).
    Lines that don't hold an integer value are skipped.
    """
    stat = {}
    for line in text.splitlines():
        fields = line.split()
        if len(fields) != 2:
            continue
        try:
            stat[fields[0]] = int(fields[1])
        except ValueError:
            continue
    return stat


def read_stat(directory: Optional[Path], name: str) -> Dict[str, int]:
    return parse_stat(read_text(directory, name))


def read_stat_field(directory: Optional[Path], name: str, key: str) -> int:
    stat = read_stat(directory, name)
    try:
        return stat[key]
    except KeyError:
        raise ControlFileError(directory / name if directory else None, f"{key!r} not found") from None
