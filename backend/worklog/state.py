from __future__ import annotations

import logging
from pathlib import Path
from threading import RLock
from typing import Dict, Optional

from .config import Settings
from .data_files import DataFile, DataFileStore

logger = logging.getLogger(__name__)


class RuntimeState:
    """Host-side state: the data file store and a revision per month summary.

    A month's revision changes whenever one of its days is saved, which tells
    clients showing that summary to reload it.
    """

    def __init__(self, base_settings: Settings, data_dir: Optional[Path] = None):
        self._lock = RLock()
        self.store = DataFileStore(data_dir or base_settings.data_dir)
        self._revisions: Dict[str, int] = {}

    def revision(self, key: str) -> int:
        with self._lock:
            return self._revisions.get(key, 0)

    def mark_saved(self, data_file: DataFile) -> int:
        """Drop cached intervals of ``data_file`` and announce a new summary revision."""
        data_file.invalidate_intervals()
        with self._lock:
            revision = self._revisions.get(data_file.key, 0) + 1
            self._revisions[data_file.key] = revision
        logger.info("Month %s changed, summary revision %d", data_file.key, revision)
        return revision
