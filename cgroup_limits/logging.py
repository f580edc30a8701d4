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
import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Dict, MutableMapping, Optional, Tuple

if TYPE_CHECKING:
    _LoggerAdapter = logging.LoggerAdapter[logging.Logger]
else:
    _LoggerAdapter = logging.LoggerAdapter

LOGGER_NAME = "cgroup-limits"


class Extra(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "extra"):
            record.extra = {}
        return True


@lru_cache(maxsize=None)
def get_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.addFilter(Extra())
    logger.addHandler(logging.NullHandler())
    return logger


class ControllerLogAdapter(_LoggerAdapter):
    """
    Binds the controller kind and its subsystem path to every record.
    Keyword arguments that are not logging kwargs are merged into the record's "extra" attribute.
    """

    logging_kwargs = {"exc_info", "stack_info", "stacklevel", "extra"}

    def __init__(self, logger: logging.Logger, controller: str, subsystem_path: Optional[str]):
        super().__init__(logger, extra={"controller": controller, "subsystem_path": subsystem_path})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        logging_kwargs: Dict[str, Any] = {}
        fields = {}
        for k, v in kwargs.items():
            if k in self.logging_kwargs:
                logging_kwargs[k] = v
            else:
                fields[k] = v

        extra = {**(self.extra or {}), **logging_kwargs.get("extra", {}), **fields}
        logging_kwargs["extra"] = {**extra, "extra": extra}
        return msg, logging_kwargs
