"""Tests for tracing functionality."""

from __future__ import annotations

import structlog

from animap.core.tracing import generate_resolution_id, get_resolution_id, resolution_context


def test_generate_resolution_id() -> None:
    """Test resolution ID generation."""
    resolution_id = generate_resolution_id()

    assert len(resolution_id) == 32  # UUID4 hex = 32 characters
    assert resolution_id.isalnum()

    ids = {generate_resolution_id() for _ in range(100)}
    assert len(ids) == 100, "Resolution IDs should be unique"


def test_get_resolution_id_when_not_set() -> None:
    """Test getting resolution ID outside a resolution."""
    structlog.contextvars.clear_contextvars()

    assert get_resolution_id() is None


def test_resolution_context_binds_identifiers() -> None:
    """Test resolution_context binds and clears its identifiers."""
    structlog.contextvars.clear_contextvars()

    with resolution_context("animepahe", "21") as resolution_id:
        assert get_resolution_id() == resolution_id
        context = structlog.contextvars.get_contextvars()
        assert context["source"] == "animepahe"
        assert context["canonical_id"] == "21"

    assert get_resolution_id() is None
    assert "source" not in structlog.contextvars.get_contextvars()


def test_resolution_context_with_explicit_id() -> None:
    """Test resolution_context with a caller-supplied ID."""
    with resolution_context("mangakatana", "30013", resolution_id="res-456") as resolution_id:
        assert resolution_id == "res-456"
        assert get_resolution_id() == "res-456"


def test_nested_resolution_context_restores_outer() -> None:
    """Test that a nested resolution restores the outer context on exit."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(job="refresh")

    try:
        with resolution_context("animepahe", "21", resolution_id="outer"):
            with resolution_context("animepahe", "22", resolution_id="inner"):
                assert get_resolution_id() == "inner"
                assert structlog.contextvars.get_contextvars()["canonical_id"] == "22"

            context = structlog.contextvars.get_contextvars()
            assert context["resolution_id"] == "outer"
            assert context["canonical_id"] == "21"

        assert structlog.contextvars.get_contextvars() == {"job": "refresh"}
    finally:
        structlog.contextvars.clear_contextvars()


def test_resolution_context_restores_on_error() -> None:
    """Test that the context is restored when the block raises."""
    structlog.contextvars.clear_contextvars()

    try:
        with resolution_context("animepahe", "21"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    assert get_resolution_id() is None
