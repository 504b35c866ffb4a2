from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from ..models.errors import PersistenceError
from ..models.portfolio import PortfolioRecord

logger = logging.getLogger(__name__)

PORTFOLIO_KEY = "portfolioData"

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalStore:
    """Key/value store of JSON text, one file per key under a base directory."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)

    def path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.base_dir / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (PermissionError, OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Unable to read stored data ({path}): {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write next to the target and swap it in so readers never see half a file.
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (PermissionError, OSError) as exc:
            raise PersistenceError(f"Unable to save data to {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except (PermissionError, OSError) as exc:
            raise PersistenceError(f"Unable to remove stored data ({path}): {exc}") from exc


class PortfolioStorage:
    """Single-slot store for the current portfolio record."""

    def __init__(self, store: LocalStore, key: str = PORTFOLIO_KEY) -> None:
        self.store = store
        self.key = key

    def save(self, record: PortfolioRecord) -> None:
        """Overwrite the stored record."""
        payload = json.dumps(record.to_dict(), indent=2, ensure_ascii=False)
        self.store.set(self.key, payload)
        logger.info("Saved portfolio for %s", record.name)

    def load(self) -> Optional[PortfolioRecord]:
        """Return the stored record, or None when absent or unreadable."""
        try:
            raw = self.store.get(self.key)
        except PersistenceError as exc:
            logger.warning("%s", exc)
            return None
        if raw is None:
            return None
        try:
            return PortfolioRecord.from_dict(json.loads(raw))
        except json.JSONDecodeError as exc:
            logger.warning("Stored portfolio is not valid JSON (%s); ignoring it", exc)
        except PersistenceError as exc:
            logger.warning("Stored portfolio is malformed (%s); ignoring it", exc)
        return None

    def clear(self) -> None:
        self.store.delete(self.key)
        logger.info("Cleared stored portfolio")
