"""App lifespan: config check, table creation, purge job wiring."""

from unittest.mock import patch

import pytest

from session_authority.config import settings
from session_authority.main import app, lifespan, scheduler


@pytest.mark.asyncio
async def test_lifespan_schedules_purge_and_can_restart(clean_db):
    with patch.object(settings, "enable_scheduler", True), patch.object(settings, "refresh_token_purge_hour", 4):
        for _ in range(2):
            async with lifespan(app):
                assert scheduler.running
                job = scheduler.get_job("purge_refresh_tokens")
                assert job is not None
                assert str(job.trigger.fields[job.trigger.FIELD_NAMES.index("hour")]) == "4"
                assert len(scheduler.get_jobs()) == 1
            assert not scheduler.running


@pytest.mark.asyncio
async def test_lifespan_without_scheduler(clean_db):
    with patch.object(settings, "enable_scheduler", False):
        async with lifespan(app):
            assert not scheduler.running


@pytest.mark.asyncio
async def test_lifespan_rejects_bad_production_config(clean_db):
    with patch.object(settings, "app_env", "production"), patch.object(settings, "secret_key", "short"):
        with pytest.raises(RuntimeError, match="SECRET_KEY"):
            async with lifespan(app):
                pass
