"""
Name: Database Pool Tests

Responsibilities:
  - Test pool lifecycle (init, get, close, reset)
  - Offline unit tests (no real DB)

Notes:
  - Uses mocking for ConnectionPool
  - Tests pool singleton behavior
"""

from unittest.mock import MagicMock, patch

import pytest


@pytest.mark.unit
class TestPoolLifecycle:
    """Test pool initialization and cleanup."""

    def test_init_pool_creates_pool(self):
        """init_pool should create a ConnectionPool."""
        from account_lifecycle.infrastructure.db.pool import init_pool, reset_pool

        reset_pool()

        with patch("account_lifecycle.infrastructure.db.pool.ConnectionPool") as MockPool:
            mock_pool = MagicMock()
            MockPool.return_value = mock_pool

            result = init_pool("postgresql://test", min_size=2, max_size=10)

            MockPool.assert_called_once()
            assert MockPool.call_args.kwargs["min_size"] == 2
            assert MockPool.call_args.kwargs["max_size"] == 10
            assert result == mock_pool

        reset_pool()

    def test_init_pool_twice_raises_error(self):
        """init_pool called twice should raise RuntimeError."""
        from account_lifecycle.infrastructure.db.pool import init_pool, reset_pool

        reset_pool()

        with patch("account_lifecycle.infrastructure.db.pool.ConnectionPool") as MockPool:
            MockPool.return_value = MagicMock()

            init_pool("postgresql://test", min_size=2, max_size=10)

            with pytest.raises(RuntimeError, match="already initialized"):
                init_pool("postgresql://test", min_size=2, max_size=10)

        reset_pool()

    def test_get_pool_without_init_raises_error(self):
        """get_pool before init_pool should raise RuntimeError."""
        from account_lifecycle.infrastructure.db.pool import get_pool, reset_pool

        reset_pool()

        with pytest.raises(RuntimeError, match="not initialized"):
            get_pool()

    def test_close_pool_clears_singleton(self):
        """close_pool should close the pool and clear the singleton."""
        from account_lifecycle.infrastructure.db.pool import (
            close_pool,
            init_pool,
            is_pool_initialized,
            reset_pool,
        )

        reset_pool()

        with patch("account_lifecycle.infrastructure.db.pool.ConnectionPool") as MockPool:
            mock_pool = MagicMock()
            MockPool.return_value = mock_pool

            init_pool("postgresql://test", min_size=1, max_size=5)
            assert is_pool_initialized() is True

            close_pool()

            mock_pool.close.assert_called_once()
            assert is_pool_initialized() is False

        close_pool()

    def test_reset_pool_swallows_close_errors(self):
        from account_lifecycle.infrastructure.db.pool import (
            init_pool,
            is_pool_initialized,
            reset_pool,
        )

        reset_pool()

        with patch("account_lifecycle.infrastructure.db.pool.ConnectionPool") as MockPool:
            mock_pool = MagicMock()
            mock_pool.close.side_effect = RuntimeError("already closed")
            MockPool.return_value = mock_pool

            init_pool("postgresql://test", min_size=1, max_size=5)
            reset_pool()

        assert is_pool_initialized() is False


@pytest.mark.unit
class TestConfigureConnection:
    def test_sets_statement_timeout(self):
        from account_lifecycle.infrastructure.db.pool import _configure_connection

        conn = MagicMock()
        _configure_connection(conn)

        conn.execute.assert_called_once_with("SET statement_timeout = 30000")
        conn.commit.assert_called_once()
