"""Backends holding the single persisted membership record."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger("nls-api.storage")


class MembershipStorage(Protocol):
    def read(self) -> Optional[Dict[str, Any]]:
        ...

    def write(self, record: Dict[str, Any]) -> None:
        ...


class InMemoryStorage:
    def __init__(self, record: Optional[Dict[str, Any]] = None):
        self._record = dict(record) if record is not None else None

    def read(self) -> Optional[Dict[str, Any]]:
        return dict(self._record) if self._record is not None else None

    def write(self, record: Dict[str, Any]) -> None:
        self._record = dict(record)


class JsonFileStorage:
    """JSON file on local disk. A missing or unreadable file reads as "no record"."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def read(self) -> Optional[Dict[str, Any]]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.warning("membership_record_unreadable", extra={"path": str(self.path)}, exc_info=True)
            return None

        if not isinstance(raw, dict):
            logger.warning("membership_record_not_object", extra={"path": str(self.path)})
            return None
        return raw

    def write(self, record: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(record, indent=2, ensure_ascii=False) + "\n"

        # the target is only ever replaced whole
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
