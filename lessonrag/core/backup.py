"""
Snapshot files for the document store.
JSON export with a checksum, and verified import that backfills missing embeddings.
"""

import hashlib
import json
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Union

from .config import SNAPSHOT_VERSION
from ..vector.types import VectorDocument
from ..util.logging import logger


@dataclass
class SnapshotManifest:
    """Header written ahead of the documents in every snapshot file."""
    version: str
    exported_at: datetime
    document_count: int
    checksum: str

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['exported_at'] = self.exported_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SnapshotManifest':
        data = dict(data)
        data['exported_at'] = datetime.fromisoformat(data['exported_at'])
        return cls(**data)


class BackupError(Exception):
    """Raised when a snapshot cannot be written."""
    pass


class RestoreError(Exception):
    """Raised when a snapshot cannot be read or verified."""
    pass


def _calculate_checksum(documents: List[Dict[str, Any]]) -> str:
    """SHA-256 over the canonical JSON form of the documents."""
    canonical = json.dumps(documents, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def export_snapshot(store) -> Dict[str, Any]:
    """Serialize every document, embeddings included, with a manifest."""
    documents = [document.to_dict() for document in store.export()]
    manifest = SnapshotManifest(
        version=SNAPSHOT_VERSION,
        exported_at=datetime.now(),
        document_count=len(documents),
        checksum=_calculate_checksum(documents),
    )
    return {"manifest": manifest.to_dict(), "documents": documents}


def import_snapshot(store, snapshot: Dict[str, Any]) -> int:
    """
    Verify a snapshot and replace the store's contents with it.

    A snapshot without a manifest is accepted as a plain document list
    (older backups); one with a manifest must match its version and checksum.

    Returns:
        Number of documents that had to be re-embedded
    """
    documents = snapshot.get("documents")
    if not isinstance(documents, list):
        raise RestoreError("Snapshot has no document list")

    if "manifest" in snapshot:
        try:
            manifest = SnapshotManifest.from_dict(snapshot["manifest"])
        except (KeyError, TypeError, ValueError) as e:
            raise RestoreError(f"Invalid snapshot manifest: {e}")
        if manifest.version != SNAPSHOT_VERSION:
            raise RestoreError(f"Unsupported snapshot version: {manifest.version}")
        if manifest.checksum != _calculate_checksum(documents):
            raise RestoreError("Snapshot checksum mismatch")

    try:
        parsed = [VectorDocument.from_dict(data) for data in documents]
    except (KeyError, TypeError, ValueError) as e:
        raise RestoreError(f"Invalid document in snapshot: {e}")

    seen = set()
    for document in parsed:
        if document.id in seen:
            raise RestoreError(f"Duplicate document id in snapshot: {document.id}")
        seen.add(document.id)

    return store.import_documents(parsed)


def export_to_file(store, path: Union[str, Path]) -> Path:
    """Write a snapshot of ``store`` to ``path`` as JSON."""
    path = Path(path)
    snapshot = export_snapshot(store)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(snapshot, indent=2), encoding="utf-8")
    except OSError as e:
        raise BackupError(f"Failed to write snapshot {path}: {e}")

    logger.log_operation("backup.export", "success", {
        "path": str(path),
        "documents": snapshot["manifest"]["document_count"]
    })
    return path


def import_from_file(store, path: Union[str, Path]) -> int:
    """Load a snapshot file into ``store``, replacing its contents."""
    path = Path(path)
    try:
        snapshot = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise RestoreError(f"Failed to read snapshot {path}: {e}")
    except json.JSONDecodeError as e:
        raise RestoreError(f"Snapshot {path} is not valid JSON: {e}")

    if isinstance(snapshot, list):
        snapshot = {"documents": snapshot}

    reembedded = import_snapshot(store, snapshot)
    logger.log_operation("backup.import", "success", {"path": str(path), "reembedded": reembedded})
    return reembedded
