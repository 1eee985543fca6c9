"""Unit tests for infrastructure.logging.context module.

Tests cover:
- bind_delivery_context() context manager
- get_correlation_id()
- clear_delivery_context()
- Nesting and isolation between concurrent deliveries
"""

import asyncio
import uuid

import pytest
import structlog

from infrastructure.logging.context import (
    bind_delivery_context,
    clear_delivery_context,
    get_correlation_id,
)


@pytest.mark.unit
class TestBindDeliveryContext:
    """Test suite for bind_delivery_context context manager."""

    def test_auto_generates_correlation_id(self):
        """Correlation ID is auto-generated if not provided."""
        with bind_delivery_context(generation_id="gen-1"):
            correlation_id = get_correlation_id()
            assert correlation_id is not None
            uuid.UUID(correlation_id)

    def test_uses_provided_correlation_id(self):
        with bind_delivery_context(correlation_id="job-42"):
            assert get_correlation_id() == "job-42"

    def test_binds_generation_and_platform(self):
        with bind_delivery_context(generation_id="gen-1", platform="telegram"):
            ctx = structlog.contextvars.get_contextvars()
            assert ctx["generation_id"] == "gen-1"
            assert ctx["platform"] == "telegram"

    def test_binds_extra_context(self):
        with bind_delivery_context(cast_id="cast-7", attempt=2):
            ctx = structlog.contextvars.get_contextvars()
            assert ctx["cast_id"] == "cast-7"
            assert ctx["attempt"] == 2

    def test_skips_none_values(self):
        with bind_delivery_context(correlation_id="c", generation_id=None, platform=None):
            ctx = structlog.contextvars.get_contextvars()
            assert "generation_id" not in ctx
            assert "platform" not in ctx

    def test_clears_after_exit(self):
        with bind_delivery_context(correlation_id="c", generation_id="gen-1"):
            pass

        assert get_correlation_id() is None
        assert "generation_id" not in structlog.contextvars.get_contextvars()

    def test_clears_after_exception(self):
        with pytest.raises(ValueError):
            with bind_delivery_context(correlation_id="exception-test"):
                raise ValueError("boom")

        assert get_correlation_id() is None

    def test_nested_context_inherits_correlation_and_restores_outer(self):
        with bind_delivery_context(correlation_id="outer", generation_id="gen-1"):
            with bind_delivery_context(generation_id="gen-1", platform="discord"):
                assert get_correlation_id() == "outer"
                assert structlog.contextvars.get_contextvars()["platform"] == "discord"

            ctx = structlog.contextvars.get_contextvars()
            assert ctx["generation_id"] == "gen-1"
            assert ctx["correlation_id"] == "outer"
            assert "platform" not in ctx

    @pytest.mark.asyncio
    async def test_concurrent_deliveries_are_isolated(self):
        async def deliver(generation_id):
            with bind_delivery_context(generation_id=generation_id):
                await asyncio.sleep(0)
                return structlog.contextvars.get_contextvars()["generation_id"]

        results = await asyncio.gather(*(deliver(f"gen-{i}") for i in range(5)))

        assert results == [f"gen-{i}" for i in range(5)]


@pytest.mark.unit
class TestClearDeliveryContext:
    def test_removes_all_context(self):
        structlog.contextvars.bind_contextvars(correlation_id="x", generation_id="g")

        clear_delivery_context()

        assert get_correlation_id() is None
        assert structlog.contextvars.get_contextvars() == {}

    def test_idempotent(self):
        clear_delivery_context()
        clear_delivery_context()
        assert get_correlation_id() is None
