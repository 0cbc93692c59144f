from napkin_mcp_bridge.store.artifact_store import ArtifactStore
from napkin_mcp_bridge.store.models import ArtifactRecord, BundleRecord, RecordKind, SessionRecord
from napkin_mcp_bridge.store.session_registry import SessionRegistry
from napkin_mcp_bridge.store.sweeper import ExpirySweeper

__all__ = [
    "ArtifactRecord",
    "ArtifactStore",
    "BundleRecord",
    "ExpirySweeper",
    "RecordKind",
    "SessionRecord",
    "SessionRegistry",
]
