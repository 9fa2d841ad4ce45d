"""Assessment history storage.

Two backends: in-memory (tests, single process) and a single JSON array file.
Records come back in chronological order.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Union

from pydantic import ValidationError

from .errors import HistoryStoreError
from .models import AssessmentRecord

logger = logging.getLogger(__name__)


class AssessmentHistoryStore:
    """Base class for history backends."""

    def append(self, record: AssessmentRecord) -> None:
        raise NotImplementedError

    def list_records(self) -> List[AssessmentRecord]:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryHistoryStore(AssessmentHistoryStore):
    def __init__(self) -> None:
        self._records: List[AssessmentRecord] = []

    def append(self, record: AssessmentRecord) -> None:
        self._records.append(record)

    def list_records(self) -> List[AssessmentRecord]:
        return sorted(self._records, key=lambda r: r.date)

    def clear(self) -> None:
        self._records.clear()


class FileHistoryStore(AssessmentHistoryStore):
    """Keeps every record in one JSON array file."""

    def __init__(self, path: Union[str, Path] = "assessment_history.json") -> None:
        self.path = Path(path)

    def _read(self, strict: bool = False) -> List[AssessmentRecord]:
        """Load every record.

        Lenient reads log unreadable content and skip it. Strict reads, used
        by ``append`` before the file is rewritten, raise ``HistoryStoreError``.
        """
        if not self.path.exists():
            return []
        try:
            with self.path.open('r', encoding='utf-8') as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            if strict:
                raise HistoryStoreError(f'Assessment history at {self.path} is unreadable: {exc}') from exc
            logger.error("Error loading assessment history from %s: %s", self.path, exc)
            return []
        if not isinstance(raw, list):
            if strict:
                raise HistoryStoreError(f'Assessment history at {self.path} is not a list')
            logger.error("Assessment history in %s is not a list; ignoring it", self.path)
            return []
        records: List[AssessmentRecord] = []
        for item in raw:
            try:
                records.append(AssessmentRecord.model_validate(item))
            except ValidationError as exc:
                if strict:
                    raise HistoryStoreError(f'Malformed entry in assessment history at {self.path}') from exc
                logger.warning("Skipping malformed history entry in %s: %s", self.path, exc)
        return records

    def _write(self, records: List[AssessmentRecord]) -> None:
        payload = [r.model_dump(mode='json') for r in records]
        tmp = self.path.with_suffix(self.path.suffix + '.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open('w', encoding='utf-8') as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            tmp.replace(self.path)
        except OSError as exc:
            raise HistoryStoreError(f'Error saving assessment history to {self.path}: {exc}') from exc

    def append(self, record: AssessmentRecord) -> None:
        records = self._read(strict=True)
        records.append(record)
        self._write(records)
        logger.info("Saved assessment record (%s entries) to %s", len(records), self.path)

    def list_records(self) -> List[AssessmentRecord]:
        return sorted(self._read(), key=lambda r: r.date)

    def clear(self) -> None:
        try:
            if self.path.exists():
                self.path.unlink()
        except OSError as exc:
            raise HistoryStoreError(f'Error clearing assessment history at {self.path}: {exc}') from exc


__all__ = [
    "AssessmentHistoryStore",
    "MemoryHistoryStore",
    "FileHistoryStore",
]
