"""Tests for src/api/dependencies.py."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from starlette.requests import Request

from src.api.dependencies import (
    cleanup_clients,
    get_components,
    get_generation_graph,
    get_request_id,
)
from src.observability.context import request_id_var

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mock_request() -> MagicMock:
    """Create a mock Starlette request."""
    request = MagicMock(spec=Request)
    request.headers = {}
    return request


@pytest.fixture(autouse=True)
def clear_caches():
    """Clear LRU caches and the request context around each test."""
    get_components.cache_clear()
    get_generation_graph.cache_clear()
    request_id_var.set("")
    yield
    get_components.cache_clear()
    get_generation_graph.cache_clear()
    request_id_var.set("")


# =============================================================================
# Get Request ID Tests
# =============================================================================


class TestGetRequestId:
    """Test get_request_id function."""

    async def test_prefers_context_var(self, mock_request: MagicMock) -> None:
        """The id bound by the logging middleware wins over the header."""
        request_id_var.set("from-middleware")
        mock_request.headers = {"X-Request-ID": "from-header"}

        assert await get_request_id(mock_request) == "from-middleware"

    async def test_uses_header_if_present(self, mock_request: MagicMock) -> None:
        """Should use X-Request-ID from headers if present."""
        mock_request.headers = {"X-Request-ID": "test-id-from-header"}

        result = await get_request_id(mock_request)

        assert result == "test-id-from-header"

    async def test_generates_new_id_if_no_header(self, mock_request: MagicMock) -> None:
        """Should generate and bind a new UUID if nothing is set."""
        result = await get_request_id(mock_request)

        parsed = uuid.UUID(result)
        assert str(parsed) == result
        assert request_id_var.get() == result


# =============================================================================
# Singleton Tests
# =============================================================================


class TestGetComponents:
    """Test get_components function."""

    def test_builds_from_settings(self, settings) -> None:
        """Should wire components from the cached settings."""
        with patch("src.api.dependencies.get_settings", return_value=settings):
            with patch("src.api.dependencies.create_components") as mock_create:
                get_components()

        mock_create.assert_called_once_with(settings)

    def test_returns_singleton(self, settings) -> None:
        """Should return the same instance on repeated calls."""
        with patch("src.api.dependencies.get_settings", return_value=settings):
            with patch("src.api.dependencies.create_components") as mock_create:
                mock_create.return_value = MagicMock()
                first = get_components()
                second = get_components()

        assert first is second
        mock_create.assert_called_once()


class TestGetGenerationGraph:
    """Test get_generation_graph function."""

    def test_returns_singleton(self) -> None:
        """Should compile the graph once."""
        with patch("src.api.dependencies.create_generation_graph") as mock_create:
            mock_create.return_value = MagicMock()
            first = get_generation_graph()
            second = get_generation_graph()

        assert first is second
        mock_create.assert_called_once()


# =============================================================================
# Cleanup Clients Tests
# =============================================================================


class TestCleanupClients:
    """Test cleanup_clients function."""

    async def test_closes_and_clears(self, settings) -> None:
        """Should close built components and clear all caches."""
        components = MagicMock()
        components.aclose = AsyncMock()

        with patch("src.api.dependencies.get_settings", return_value=settings):
            with patch("src.api.dependencies.create_components", return_value=components):
                with patch("src.api.dependencies.create_generation_graph"):
                    get_components()
                    get_generation_graph()

        await cleanup_clients()

        components.aclose.assert_awaited_once()
        assert get_components.cache_info().currsize == 0
        assert get_generation_graph.cache_info().currsize == 0

    async def test_nothing_built(self) -> None:
        """Should not build components just to close them."""
        with patch("src.api.dependencies.create_components") as mock_create:
            await cleanup_clients()

        mock_create.assert_not_called()
