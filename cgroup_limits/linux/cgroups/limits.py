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

import enum
from dataclasses import dataclass

# Returned by the integer API when a value can't be determined on this host/kernel.
# Kept distinct from -1, which means "no limit configured".
OSCONTAINER_ERROR = -2
UNLIMITED_VALUE = -1


class ReadingKind(enum.Enum):
    VALUE = "value"
    UNLIMITED = "unlimited"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class LimitReading:
    kind: ReadingKind
    value: int = 0

    @classmethod
    def of(cls, value: int) -> "LimitReading":
        assert value >= 0, f"expected a non-negative value, got {value}"
        return cls(ReadingKind.VALUE, value)

    @property
    def is_value(self) -> bool:
        return self.kind is ReadingKind.VALUE

    @property
    def is_unlimited(self) -> bool:
        return self.kind is ReadingKind.UNLIMITED

    @property
    def is_unsupported(self) -> bool:
        return self.kind is ReadingKind.UNSUPPORTED

    def as_int(self) -> int:
        """
        Returns the value, -1 for unlimited or OSCONTAINER_ERROR for unsupported.
        """
        if self.kind is ReadingKind.VALUE:
            return self.value
        if self.kind is ReadingKind.UNLIMITED:
            return UNLIMITED_VALUE
        return OSCONTAINER_ERROR

    def __str__(self) -> str:
        if self.kind is ReadingKind.VALUE:
            return str(self.value)
        return self.kind.value


UNLIMITED = LimitReading(ReadingKind.UNLIMITED)
UNSUPPORTED = LimitReading(ReadingKind.UNSUPPORTED)
