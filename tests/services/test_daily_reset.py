"""Tests for DailyResetService and the reset task."""

from unittest.mock import AsyncMock, patch

import pytest
from celery.schedules import crontab
from sqlalchemy.dialects import postgresql

from meowchi.services.daily_reset import DailyResetService
from meowchi.tasks.schedules import CELERY_BEAT_SCHEDULE
from tests.helpers import make_result

TODAY = "2025-03-02"


class TestDailyResetService:
    @pytest.mark.asyncio
    async def test_resets_users_and_quota(self, mock_db):
        mock_db.execute.side_effect = [
            make_result(rowcount=17),  # bulk user update
            make_result(),  # quota upsert
        ]

        summary = await DailyResetService(mock_db).run(TODAY)

        assert summary.day == TODAY
        assert summary.users_reset == 17
        assert summary.quota_day == TODAY
        mock_db.commit.assert_awaited_once()

        user_update = str(
            mock_db.execute.await_args_list[0].args[0].compile(dialect=postgresql.dialect())
        )
        for column in (
            "meow_taps",
            "meow_claim_used_today",
            "meow_taps_date",
            "streak_claimed_today",
        ):
            assert column in user_update

        quota_upsert = str(
            mock_db.execute.await_args_list[1].args[0].compile(dialect=postgresql.dialect())
        )
        assert "meow_daily_claims" in quota_upsert
        assert "ON CONFLICT" in quota_upsert

    @pytest.mark.asyncio
    async def test_failure_rolls_back_everything(self, mock_db):
        mock_db.execute.side_effect = [make_result(rowcount=3), RuntimeError("db down")]

        with pytest.raises(RuntimeError):
            await DailyResetService(mock_db).run(TODAY)

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_awaited()


class TestResetSchedule:
    def test_fires_at_tashkent_midnight(self):
        entry = CELERY_BEAT_SCHEDULE["meow-daily-reset"]

        assert entry["task"] == "meowchi.tasks.daily_reset.reset_daily_state_task"
        assert entry["schedule"] == crontab(hour=19, minute=0)


class TestResetTask:
    def test_error_summary_is_returned(self):
        from meowchi.tasks.daily_reset import reset_daily_state_task

        failing = AsyncMock(return_value={"status": "error", "day": TODAY, "error": "boom"})
        with patch("meowchi.tasks.daily_reset._run_daily_reset", failing):
            result = reset_daily_state_task.run(TODAY)

        assert result["status"] == "error"
        failing.assert_awaited_once_with(TODAY)

    def test_not_retried(self):
        from meowchi.tasks.daily_reset import reset_daily_state_task

        assert reset_daily_state_task.max_retries == 0
