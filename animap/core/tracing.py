"""Resolution tracing using structlog contextvars.

Every log line emitted while a resolution is in progress carries the
resolution_id, source and canonical_id of that resolution.
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from contextlib import contextmanager

import structlog.contextvars as contextvars


def generate_resolution_id() -> str:
    """Generate a unique resolution ID (32 hex characters)."""
    return uuid.uuid4().hex


def get_resolution_id() -> str | None:
    """Get the current resolution ID from context, if any."""
    return contextvars.get_contextvars().get("resolution_id")


@contextmanager
def resolution_context(
    source: str,
    canonical_id: str,
    resolution_id: str | None = None,
) -> Generator[str]:
    """Bind resolution identifiers to the logging context.

    The previous context is restored on exit, so nested resolutions (a
    re-resolution after a stale mapping) do not leak into the caller.

    Args:
        source: Content-source name
        canonical_id: Canonical id of the record being resolved
        resolution_id: Optional id to use. If None, a new one is generated.

    Yields:
        The resolution ID being used
    """
    old_context = dict(contextvars.get_contextvars())

    if resolution_id is None:
        resolution_id = generate_resolution_id()

    contextvars.bind_contextvars(
        resolution_id=resolution_id,
        source=source,
        canonical_id=canonical_id,
    )

    try:
        yield resolution_id
    finally:
        contextvars.clear_contextvars()
        if old_context:
            contextvars.bind_contextvars(**old_context)
