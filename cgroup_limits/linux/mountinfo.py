"""
See section 3.5 in https://www.kernel.org/doc/Documentation/filesystems/proc.txt
"""

from typing import Iterable, Iterator, List, NamedTuple, Optional

import psutil

PROC_ROOT = "/proc"

CGROUP_V1_FILESYSTEM = "cgroup"


class Mount(NamedTuple):
    mount_id: int
    parent_id: int
    root: str
    mount_point: str
    filesystem_type: str
    mount_source: str
    super_options: List[str]


def parse_mountinfo_line(line: str) -> Mount:
    fields = line.split()
    separator_index = fields.index("-", 6)  # marks the end of optional fields
    filesystem_fields = fields[separator_index + 1 :]
    return Mount(
        mount_id=int(fields[0]),
        parent_id=int(fields[1]),
        root=fields[3],
        mount_point=fields[4],
        filesystem_type=filesystem_fields[0],
        mount_source=filesystem_fields[1],
        super_options=filesystem_fields[2].split(",") if len(filesystem_fields) > 2 else [],
    )


def iter_mountinfo(process: Optional[psutil.Process] = None) -> Iterator[Mount]:
    """
    Iterate over mounts in the mount namespace of process (default: current process).
    """
    pid = process.pid if process is not None else psutil.Process().pid
    with open(f"{PROC_ROOT}/{pid}/mountinfo") as f:
        yield from (parse_mountinfo_line(line) for line in f if line.strip())


def iter_cgroup_v1_mounts(mounts: Iterable[Mount]) -> Iterator[Mount]:
    # Controller names of a v1 hierarchy are listed in its super options, e.g "rw,memory"
    return (mount for mount in mounts if mount.filesystem_type == CGROUP_V1_FILESYSTEM)
