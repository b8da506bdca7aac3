"""Stable sync keys for discovered resources.

A key has the form ``<kind>/<section>/<identity>``. Kind and section are
percent-escaped completely, so the first two ``/`` always delimit them and
keys from different kinds or sections never collide.
"""

from __future__ import annotations

from urllib.parse import quote

POD_KIND = "pods"


def _escape(component: str, safe: str = "") -> str:
    return quote(component, safe=safe)


def build_sync_key(kind: str, section: str, identity: str | tuple[str, ...]) -> str:
    """Build the key under which the reconciler stores a resource's targets.

    *identity* is either a pre-joined string (``"ns/name"``; ``/`` is kept,
    everything else escaped) or a tuple of components escaped one by one,
    e.g. ``("ns", "name")`` for a pod.
    """
    if isinstance(identity, tuple):
        tail = "/".join(_escape(part) for part in identity)
    else:
        tail = _escape(identity, safe="/")
    return f"{_escape(kind)}/{_escape(section)}/{tail}"
