from __future__ import annotations


class BridgeError(Exception):
    """Base class for every error raised by the bridge itself."""


class ProtocolError(BridgeError):
    """A request that cannot be dispatched. Reported as a JSON-RPC error object."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class ToolExecutionError(BridgeError):
    """A tool handler failed. Reported in-band as an ``isError`` tool result."""


class GenerationError(ToolExecutionError):
    pass


class SubmissionError(GenerationError):
    pass


class JobFailedError(GenerationError):
    pass


class GenerationTimeoutError(GenerationError, TimeoutError):
    pass


class BundleError(ToolExecutionError):
    pass


class EmptyBundleError(BundleError):
    pass


class MissingArtifactError(BundleError):
    def __init__(self, artifact_id: str):
        super().__init__(f"Artifact not found: {artifact_id}")
        self.artifact_id = artifact_id


class InvalidProviderResponse(BridgeError):
    """The provider answered with a body that is not the JSON object we expect."""


class NotFoundError(BridgeError):
    pass
