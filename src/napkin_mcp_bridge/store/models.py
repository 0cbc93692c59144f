from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RecordKind(str, Enum):
    ARTIFACT = "artifact"
    BUNDLE = "bundle"


@dataclass(frozen=True)
class ArtifactRecord:
    id: str
    data: bytes
    mime_type: str
    filename: str
    created_at: float

    @property
    def kind(self) -> RecordKind:
        return RecordKind.ARTIFACT


@dataclass(frozen=True)
class BundleRecord:
    id: str
    member_artifact_ids: tuple[str, ...]
    created_at: float

    @property
    def kind(self) -> RecordKind:
        return RecordKind.BUNDLE


@dataclass(frozen=True)
class SessionRecord:
    id: str
    created_at: float
    streaming: bool = False
