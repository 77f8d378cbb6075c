import pytest

from intel_sync.session.poller import SessionPoller


async def _tick():
    return None


@pytest.mark.asyncio
async def test_poller_registers_single_interval_job():
    poller = SessionPoller(_tick, interval_s=300, job_id="poll:u1")
    assert poller.status() == {"running": False, "next_run": None}

    poller.start()
    try:
        status = poller.status()
        assert status["running"] is True
        assert status["next_run"] is not None

        job = poller._scheduler.get_job("poll:u1")
        assert job.max_instances == 1
        assert job.coalesce is True
        assert job.trigger.interval.total_seconds() == 300
    finally:
        poller.stop()

    assert poller.running is False


@pytest.mark.asyncio
async def test_second_start_is_ignored():
    poller = SessionPoller(_tick, interval_s=60)
    poller.start()
    scheduler = poller._scheduler
    try:
        poller.start()
        assert poller._scheduler is scheduler
        assert len(scheduler.get_jobs()) == 1
    finally:
        poller.stop()


def test_stop_without_start_is_harmless():
    poller = SessionPoller(_tick)
    poller.stop()
    assert poller.running is False
