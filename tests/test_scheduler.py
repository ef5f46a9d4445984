from datetime import datetime, timedelta

from anniversync.scheduler import SchedulerService


def scheduler(sync_func=lambda: True, **overrides):
    config = {'sync_schedule': '0 6 * * *', 'sync_interval_hours': 0, 'startup_delay': 0}
    config.update(overrides)
    return SchedulerService(sync_func, config=config, install_signal_handlers=False)


def test_next_sync_time_from_cron():
    service = scheduler()
    assert service.next_sync_time(datetime(2025, 3, 15, 7, 0)) == datetime(2025, 3, 16, 6, 0)


def test_invalid_cron_falls_back_to_hourly():
    service = scheduler(sync_schedule='not a cron')
    now = datetime(2025, 3, 15, 7, 0)
    assert service.next_sync_time(now) == now + timedelta(hours=1)
    assert service.should_sync(now) is False


def test_cron_fires_within_tick():
    service = scheduler()
    assert service.should_sync(datetime(2025, 3, 15, 6, 0, 30)) is True
    assert service.should_sync(datetime(2025, 3, 15, 6, 5)) is False


def test_interval_mode():
    service = scheduler(sync_interval_hours=6)
    now = datetime(2025, 3, 15, 12, 0)

    assert service.should_sync(now) is True
    service.last_sync = now - timedelta(hours=5)
    assert service.should_sync(now) is False
    service.last_sync = now - timedelta(hours=6)
    assert service.should_sync(now) is True


def test_perform_sync_survives_exceptions():
    def boom():
        raise RuntimeError("server down")

    service = scheduler(boom)
    assert service.perform_sync() is False


def test_daemon_stops_when_not_running():
    calls = []
    service = scheduler(lambda: calls.append(1) or True)
    service.running = False

    service.run_daemon()

    assert calls == []
