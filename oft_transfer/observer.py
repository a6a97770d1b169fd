"""
Progress Observers

The transfer workflow reports progress through an injected observer
instead of writing to a global logger. LoguruObserver is the default sink.
"""

import sys
from typing import Any, Dict, List, Protocol, Tuple

from loguru import logger


LOG_FORMAT = "{time:YYYY-MM-DDTHH:mm:ss.SSSZ} {level}: {message}"


class TransferObserver(Protocol):
    def emit(self, event: str, message: str, **fields: Any) -> None:
        ...


class LoguruObserver:
    """Forward progress events to loguru"""

    # Events reported at WARNING; everything else is INFO
    WARNING_EVENTS = {'balance.unavailable'}

    def __init__(self, log=logger):
        self._logger = log

    def emit(self, event: str, message: str, **fields: Any) -> None:
        level = "WARNING" if event in self.WARNING_EVENTS else "INFO"
        self._logger.bind(event=event, **fields).log(level, message)


class RecordingObserver:
    """Keep events in memory"""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def emit(self, event: str, message: str, **fields: Any) -> None:
        self.events.append((event, dict(fields, message=message)))

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def count(self, event: str) -> int:
        return self.names.count(event)


def setup_logging(level: str = "INFO") -> None:
    """Console logging as '<timestamp> <level>: <message>' on stderr"""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
