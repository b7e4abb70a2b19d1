"""Error taxonomy for publish-path label generation."""

from __future__ import annotations

from typing import Any, Dict


class LabelError(Exception):
    """Base class for every failure that aborts label generation."""

    kind = "label_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context: Dict[str, Any] = dict(context)

    @property
    def payload(self) -> Dict[str, Any]:
        """JSON-ready description of the failure, keyed by `error` and `hint`."""
        payload: Dict[str, Any] = {"error": self.kind, "hint": str(self)}
        payload.update(self.context)
        return payload


class ConfigurationError(LabelError):
    """Publish path unset or missing, or the marker configuration is invalid."""

    kind = "configuration_error"


class MissingArtifactError(LabelError):
    """An expected marker file is absent from the publish path."""

    kind = "missing_artifact"


class EmptyArtifactError(LabelError):
    """A marker file exists but its first line is blank."""

    kind = "empty_artifact"


class DanglingReferenceError(LabelError):
    """A marker file points at a directory that does not exist."""

    kind = "dangling_reference"


class TokenNotFoundError(LabelError):
    """The search token does not occur in the resolved reference path."""

    kind = "token_not_found"
