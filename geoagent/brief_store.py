"""Keyed store of finished content briefs.

Briefs live in an in-process dict keyed by brief id. When a snapshot
path is given, every add also writes the full store to JSON so a
restarted CLI or Streamlit session can list earlier briefs:

- Writes are atomic: write to <path>.tmp then os.replace
- A lock serialises concurrent runs in one process
- A corrupt or unreadable snapshot starts the store empty
- A failed snapshot write is logged; the brief stays in memory
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

from .types import ContentBrief

logger = logging.getLogger(__name__)


class BriefStore:
    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self.path = Path(path) if path else None
        self._briefs: Dict[str, ContentBrief] = {}
        self._lock = threading.Lock()
        if self.path is not None:
            self._load()

    # -----------------------------
    # Snapshot helpers
    # -----------------------------
    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable brief snapshot %s: %s", self.path, e)
            return
        for item in raw if isinstance(raw, list) else []:
            if isinstance(item, dict) and item.get("id"):
                brief = ContentBrief.from_dict(item)
                self._briefs[brief.id] = brief

    def _save(self) -> None:
        if self.path is None:
            return
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        data = [b.to_dict() for b in self._briefs.values()]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error("Failed to write brief snapshot %s: %s", self.path, e)
            if tmp_path.exists():
                tmp_path.unlink()

    # -----------------------------
    # Public API
    # -----------------------------
    def add(self, brief: ContentBrief) -> None:
        with self._lock:
            self._briefs[brief.id] = brief
            self._save()

    def get(self, brief_id: str) -> Optional[ContentBrief]:
        with self._lock:
            return self._briefs.get(brief_id)

    def list(self) -> List[ContentBrief]:
        """All briefs, newest generatedAt first."""
        with self._lock:
            briefs = list(self._briefs.values())
        # ISO-8601 UTC timestamps with a fixed format sort lexically.
        return sorted(briefs, key=lambda b: b.metadata.generated_at, reverse=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._briefs)
