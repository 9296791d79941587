"""
Tests for database decorators.
"""

import pytest

from rewards_engine.utils.db_decorators import with_auto_commit


class Job:
    """Service-like object holding a session."""

    def __init__(self, session):
        self.session = session

    @with_auto_commit
    async def succeed(self):
        return "done"

    @with_auto_commit
    async def fail(self):
        raise ValueError("boom")


class TestWithAutoCommit:
    """Test commit-on-success decorator."""

    @pytest.mark.asyncio
    async def test_commits(self, mock_session):
        """Successful calls are committed."""
        assert await Job(mock_session).succeed() == "done"
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rolls_back_and_reraises(self, mock_session):
        """Errors roll back and propagate."""
        with pytest.raises(ValueError):
            await Job(mock_session).fail()

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rollback_failure_keeps_original_error(self, mock_session):
        """A failing rollback does not mask the original exception."""
        mock_session.rollback.side_effect = RuntimeError("connection lost")

        with pytest.raises(ValueError):
            await Job(mock_session).fail()

    @pytest.mark.asyncio
    async def test_session_keyword(self, mock_session):
        """A session keyword argument is used."""

        @with_auto_commit
        async def run(session=None):
            return 42

        assert await run(session=mock_session) == 42
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_without_session(self):
        """Functions without a session still run."""

        @with_auto_commit
        async def run():
            return "ok"

        assert await run() == "ok"
