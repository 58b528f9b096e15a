"""agenteval storage layer - JSON artifact persistence."""

from agenteval.storage.artifacts import ArtifactStore, safe_id

__all__ = ["ArtifactStore", "safe_id"]
