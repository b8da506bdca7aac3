"""Decoding of raw Kubernetes API payloads into typed pod resources.

Decoding is all-or-nothing: a payload that fails validation anywhere is
rejected as a whole and the caller must not apply any part of it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from kubesd.models.pods import Pod, PodList

# Longest payload excerpt embedded in an error message.
_MAX_EXCERPT_BYTES = 1024


class DecodeError(ValueError):
    """Base class for payload decoding failures."""


class PodListDecodeError(DecodeError):
    """Raised when a PodList payload cannot be decoded."""

    def __init__(self, payload: bytes, cause: Exception) -> None:
        self.excerpt = _excerpt(payload)
        super().__init__(f"cannot unmarshal PodList from {self.excerpt}: {cause}")


class PodDecodeError(DecodeError):
    """Raised when a single watched Pod object cannot be decoded."""


def _excerpt(payload: bytes) -> str:
    if len(payload) <= _MAX_EXCERPT_BYTES:
        return repr(payload)
    omitted = len(payload) - _MAX_EXCERPT_BYTES
    return f"{payload[:_MAX_EXCERPT_BYTES]!r}... ({omitted} more bytes)"


def parse_pod_list(data: bytes | str) -> PodList:
    """Parse a PodList from a raw JSON payload.

    Raises:
        PodListDecodeError: the payload is not valid JSON or does not match
            the PodList shape. The original error is chained as ``__cause__``.
    """
    if isinstance(data, str):
        data = data.encode()
    try:
        return PodList.model_validate_json(data)
    except ValidationError as exc:
        raise PodListDecodeError(data, exc) from exc


def parse_pod(obj: Mapping[str, Any]) -> Pod:
    """Build a Pod from an already-parsed watch object (``raw_object``)."""
    try:
        return Pod.model_validate(dict(obj))
    except (TypeError, ValueError) as exc:  # ValidationError is a ValueError
        raise PodDecodeError(f"cannot decode Pod from watch object: {exc}") from exc
