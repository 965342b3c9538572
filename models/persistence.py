"""Snapshot file holding the cache between sessions."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from models.exceptions import CachePersistenceError
from models.store import ThreadStore

logger = logging.getLogger(__name__)


class SnapshotFile:
    """Reads and writes a ThreadStore as a JSON document.

    Writes go to a temporary file in the same directory and are renamed into
    place, so a crash mid-write leaves the previous snapshot intact.

    Args:
        path: Location of the cache file.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> ThreadStore:
        """Rehydrate the store.

        A missing, unreadable or malformed file is treated as a first run.

        Returns:
            The stored ThreadStore, or an empty one.
        """
        if not self.path.exists():
            logger.info(f"No cache at {self.path}, starting empty")
            return ThreadStore()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read cache {self.path}: {e}; starting empty")
            return ThreadStore()

        if not isinstance(data, dict):
            logger.warning(f"Cache {self.path} is not an object; starting empty")
            return ThreadStore()

        try:
            store = ThreadStore.from_snapshot(data)
        except ValidationError as e:
            logger.warning(
                f"Cache {self.path} failed validation ({e.error_count()} errors); "
                f"starting empty"
            )
            return ThreadStore()

        logger.info(
            f"Loaded {store.thread_count} threads from {self.path} "
            f"(last updated {store.last_updated})"
        )
        return store

    def save(self, store: ThreadStore) -> None:
        """Write the whole store.

        Raises:
            CachePersistenceError: If the file could not be written.
        """
        payload = json.dumps(store.to_snapshot())
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                dir=self.path.parent,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise CachePersistenceError(str(self.path), str(e)) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.debug(f"Wrote {store.thread_count} threads to {self.path}")
