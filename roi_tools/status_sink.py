#
# status_sink.py: operation outcome reporting
#
# Copyright DeGirum Corporation 2025
# All rights reserved
#
# Implements status events and sinks which surface outcomes of zone editing
# operations to the user interface.
#

import logging, threading
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
from . import logger_get


class StatusKind(Enum):
    """Status event kinds"""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class StatusEvent:
    kind: StatusKind
    message: str


class StatusSink:
    """
    Base class for status sinks. Display duration, positioning and dismissal
    of the events are up to the sink implementation.
    """

    def report(self, event: StatusEvent):
        raise NotImplementedError

    def info(self, message: str):
        self.report(StatusEvent(StatusKind.INFO, message))

    def success(self, message: str):
        self.report(StatusEvent(StatusKind.SUCCESS, message))

    def error(self, message: str):
        self.report(StatusEvent(StatusKind.ERROR, message))


class LoggingStatusSink(StatusSink):
    """Status sink which writes events to the package logger"""

    _levels = {
        StatusKind.INFO: logging.INFO,
        StatusKind.SUCCESS: logging.INFO,
        StatusKind.ERROR: logging.ERROR,
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger if logger is not None else logger_get()

    def report(self, event: StatusEvent):
        self._logger.log(self._levels[event.kind], f"[{event.kind.value}] {event.message}")


class CollectingStatusSink(StatusSink):
    """Status sink which accumulates events; thread-safe"""

    def __init__(self):
        self._events: List[StatusEvent] = []
        self._lock = threading.Lock()

    def report(self, event: StatusEvent):
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[StatusEvent]:
        with self._lock:
            return list(self._events)

    def last(self) -> Optional[StatusEvent]:
        with self._lock:
            return self._events[-1] if self._events else None

    def pop_all(self) -> List[StatusEvent]:
        with self._lock:
            ret = self._events
            self._events = []
            return ret
