from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from uuid import uuid4

from loguru import logger

from napkin_mcp_bridge.errors import EmptyBundleError, MissingArtifactError
from napkin_mcp_bridge.store.models import ArtifactRecord, BundleRecord, RecordKind

DEFAULT_TTL_SECONDS = 3600.0
_ID_LENGTH = 12


class ArtifactStore:
    """In-memory, time-boxed home for generated artifacts and the bundles that group them.

    Artifacts and bundles share one id namespace. Lookups check the record kind,
    so a bundle id never resolves as an artifact and vice versa.

    Every mutation is a single synchronous step, so callers on one event loop
    need no locking.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._records: dict[str, ArtifactRecord | BundleRecord] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def put(self, data: bytes, mime_type: str, filename: str) -> str:
        artifact_id = self._new_id()
        self._records[artifact_id] = ArtifactRecord(
            id=artifact_id,
            data=data,
            mime_type=mime_type,
            filename=filename,
            created_at=self._clock(),
        )
        logger.info(f"Stored artifact {artifact_id} ({mime_type}, {len(data):,} bytes)")
        return artifact_id

    def get(self, artifact_id: str) -> ArtifactRecord | None:
        record = self._records.get(artifact_id)
        if record is None or record.kind is not RecordKind.ARTIFACT:
            return None
        return record

    def get_bundle(self, bundle_id: str) -> BundleRecord | None:
        record = self._records.get(bundle_id)
        if record is None or record.kind is not RecordKind.BUNDLE:
            return None
        return record

    def bundle(self, artifact_ids: Sequence[str]) -> str:
        """Group existing artifacts under a new bundle id.

        Validation is strict: every id must name a live artifact right now.
        Nothing is written unless all of them do.
        """
        members = tuple(artifact_ids)
        if not members:
            raise EmptyBundleError("A bundle needs at least one artifact id")
        for artifact_id in members:
            if self.get(artifact_id) is None:
                raise MissingArtifactError(artifact_id)

        bundle_id = self._new_id()
        self._records[bundle_id] = BundleRecord(
            id=bundle_id,
            member_artifact_ids=members,
            created_at=self._clock(),
        )
        logger.info(f"Created bundle {bundle_id} with {len(members)} artifact(s)")
        return bundle_id

    def serve_bundle(self, bundle_id: str) -> list[tuple[str, bytes]] | None:
        """Return ``(filename, bytes)`` for each member still present, in bundle order.

        Members that expired since the bundle was created are skipped.
        Returns ``None`` when the bundle itself is unknown.
        """
        bundle = self.get_bundle(bundle_id)
        if bundle is None:
            return None
        entries: list[tuple[str, bytes]] = []
        for artifact_id in bundle.member_artifact_ids:
            artifact = self.get(artifact_id)
            if artifact is None:
                logger.debug(f"Bundle {bundle_id}: member {artifact_id} is gone, skipping")
                continue
            entries.append((artifact.filename, artifact.data))
        return entries

    def sweep(self, now: float | None = None) -> int:
        now = self._clock() if now is None else now
        expired = [
            record_id
            for record_id, record in self._records.items()
            if now - record.created_at > self._ttl_seconds
        ]
        for record_id in expired:
            del self._records[record_id]
        return len(expired)

    def stats(self) -> dict[str, int]:
        artifacts = sum(1 for r in self._records.values() if r.kind is RecordKind.ARTIFACT)
        return {
            "artifacts": artifacts,
            "bundles": len(self._records) - artifacts,
        }

    def __len__(self) -> int:
        return len(self._records)

    def _new_id(self) -> str:
        while True:
            candidate = uuid4().hex[:_ID_LENGTH]
            if candidate not in self._records:
                return candidate
