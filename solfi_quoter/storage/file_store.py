from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from solfi_quoter.common import log_event

from .types import AccountRecord, FreshnessMarker, SnapshotUnavailableError

ACCOUNT_FILE_PREFIX = "account_"
ACCOUNT_FILE_SUFFIX = ".json"
METADATA_FILENAME = "metadata.json"


def _write_atomic(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, separators=(",", ":"))
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class FileSnapshotStore:
    """One JSON file per account plus ``metadata.json`` under a data directory.

    A refresher may rewrite files while readers list them. Each file is
    replaced atomically, so a reader sees every record either old or new but
    the set as a whole can mix both.
    """

    def __init__(self, data_dir: str | Path, *, logger: logging.Logger) -> None:
        self.data_dir = Path(data_dir)
        self._logger = logger

    def _account_path(self, address: str) -> Path:
        return self.data_dir / f"{ACCOUNT_FILE_PREFIX}{address}{ACCOUNT_FILE_SUFFIX}"

    @property
    def metadata_path(self) -> Path:
        return self.data_dir / METADATA_FILENAME

    def get(self, address: str) -> AccountRecord | None:
        path = self._account_path(address)
        if not path.is_file():
            return None
        return self._read_record(path)

    def put(self, record: AccountRecord) -> None:
        _write_atomic(self._account_path(record.address), record.to_dict())

    def list(self) -> list[AccountRecord]:
        if not self.data_dir.exists():
            return []

        try:
            paths = sorted(self.data_dir.iterdir())
        except OSError as error:
            raise SnapshotUnavailableError(f"Snapshot directory {self.data_dir} is unreadable: {error}") from error

        records: list[AccountRecord] = []
        for path in paths:
            name = path.name
            if not (path.is_file() and name.startswith(ACCOUNT_FILE_PREFIX) and name.endswith(ACCOUNT_FILE_SUFFIX)):
                continue
            record = self._read_record(path)
            if record is not None:
                records.append(record)
        return records

    def _read_record(self, path: Path) -> AccountRecord | None:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            return AccountRecord.from_dict(payload)
        except (OSError, ValueError, KeyError, TypeError) as error:
            log_event(
                self._logger,
                level="warning",
                event="snapshot_record_skipped",
                message="Skipping unreadable snapshot account record",
                path=str(path),
                error=str(error),
            )
            return None

    def read_freshness(self) -> FreshnessMarker | None:
        path = self.metadata_path
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            return FreshnessMarker.from_dict(payload)
        except (OSError, ValueError, TypeError) as error:
            log_event(
                self._logger,
                level="warning",
                event="snapshot_metadata_unreadable",
                message="Snapshot freshness record is unreadable; simulations will not be slot-anchored",
                path=str(path),
                error=str(error),
            )
            return None

    def write_freshness(self, marker: FreshnessMarker) -> None:
        _write_atomic(self.metadata_path, marker.to_dict())
