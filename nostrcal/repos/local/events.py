"""
Local file-based implementation of the EventRepository protocol.
Stores signed events as a JSON array in a single file.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, List, Sequence

from pydantic import ValidationError

from nostrcal.domain import Event
from nostrcal.registry import ModelRegistry
from nostrcal.repos.memory.events import InMemoryEventRepository
from nostrcal.validation import PublishError

logger = logging.getLogger(__name__)


class LocalEventRepository(InMemoryEventRepository):
    """
    An event store persisted to a JSON file, used by the command line.

    The file is read once at construction. Entries that do not parse are
    logged and skipped one by one; an unreadable file is treated as empty.
    In both cases the original file is moved aside to a ``.corrupt`` copy
    before the first save rewrites it.
    """

    def __init__(self, registry: ModelRegistry, path: str):
        self._path = Path(path).expanduser()
        self._needs_backup = False
        super().__init__(registry, self._load())

    def _read_items(self) -> List[Any]:
        try:
            with open(self._path, "r") as f:
                data = json.load(f)
        except (IOError, json.JSONDecodeError):
            logger.warning(
                f"Could not read or parse event store: {self._path}",
                exc_info=True,
            )
            self._needs_backup = True
            return []
        if not isinstance(data, list):
            logger.warning(f"Event store is not a JSON array: {self._path}")
            self._needs_backup = True
            return []
        return data

    def _load(self) -> List[Event]:
        if not self._path.exists():
            return []
        events = []
        for index, item in enumerate(self._read_items()):
            try:
                event = Event.model_validate(item)
            except ValidationError:
                logger.warning(
                    f"Skipping invalid entry {index} in event store: "
                    f"{self._path}",
                    exc_info=True,
                )
                self._needs_backup = True
                continue
            if not event.id:
                logger.warning(
                    f"Skipping unsigned entry {index} in event store: "
                    f"{self._path}"
                )
                self._needs_backup = True
                continue
            events.append(event)
        return events

    def _backup_path(self) -> Path:
        candidate = self._path.with_name(self._path.name + ".corrupt")
        counter = 1
        while candidate.exists():
            candidate = self._path.with_name(
                f"{self._path.name}.corrupt.{counter}"
            )
            counter += 1
        return candidate

    def _write(self) -> None:
        payload = [event.model_dump() for event in self.events]
        try:
            os.makedirs(self._path.parent, exist_ok=True)
            if self._needs_backup and self._path.exists():
                backup = self._backup_path()
                os.replace(self._path, backup)
                logger.warning(
                    f"Moved unreadable event store aside to {backup}"
                )
            self._needs_backup = False
            with open(self._path, "w") as f:
                json.dump(payload, f, indent=2)
        except OSError as e:
            logger.error(
                f"Failed to write event store: {self._path}", exc_info=True
            )
            raise PublishError(f"Could not save events: {e}") from e

    async def save(self, events: Sequence[Event]) -> None:
        await super().save(events)
        self._write()
