from __future__ import annotations

from typing import Any


class DcfError(Exception):
    """Base class for every error raised by the encoding stack."""

    code = "DCF_ERROR"

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = dict(detail or {})

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "detail": dict(self.detail)}


class UnsupportedInput(DcfError):
    """
    Ingestion could not produce any page units (unknown format, unreadable
    source, empty content). Propagated to the caller, never recovered.
    """

    code = "UNSUPPORTED_INPUT"


class ConfigurationError(DcfError, ValueError):
    """Unknown preset name or tunable outside its valid range; raised before any pipeline work."""

    code = "CONFIGURATION_ERROR"


class EncodingFailure(DcfError):
    """Internal invariant violation (e.g. a dictionary lookup miss)."""

    code = "ENCODING_FAILURE"
