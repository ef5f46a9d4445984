"""
Scheduling service for periodic sync runs
"""

import time
import signal
import logging
from datetime import datetime, timedelta
from croniter import croniter, CroniterBadCronError

from .config import get_scheduler_config

logger = logging.getLogger(__name__)

TICK_SECONDS = 60


class SchedulerService:
    """Runs the sync function on a cron schedule or a fixed interval"""

    def __init__(self, sync_func, config=None, install_signal_handlers=True):
        self.sync_func = sync_func
        self.running = True

        config = config or get_scheduler_config()
        self.sync_schedule = config['sync_schedule']
        self.sync_interval_hours = config['sync_interval_hours']
        self.startup_delay = config['startup_delay']

        self.last_sync = None

        if install_signal_handlers:
            signal.signal(signal.SIGTERM, self._signal_handler)
            signal.signal(signal.SIGINT, self._signal_handler)

    def _signal_handler(self, signum, frame):
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.running = False

    def next_sync_time(self, now=None):
        """Next cron firing after now; hourly if the expression is invalid"""
        now = now or datetime.now()
        try:
            return croniter(self.sync_schedule, now).get_next(datetime)
        except (CroniterBadCronError, ValueError) as e:
            logger.error(f"Invalid cron schedule '{self.sync_schedule}': {e}")
            return now + timedelta(hours=1)

    def should_sync(self, now=None) -> bool:
        now = now or datetime.now()
        if self.sync_interval_hours > 0:
            if self.last_sync is None:
                return True
            return now - self.last_sync >= timedelta(hours=self.sync_interval_hours)

        # Fired within the last tick
        try:
            cron = croniter(self.sync_schedule, now - timedelta(seconds=TICK_SECONDS))
            return cron.get_next(datetime) <= now
        except (CroniterBadCronError, ValueError):
            return False

    def perform_sync(self) -> bool:
        logger.info("Starting sync operation...")
        try:
            success = self.sync_func()
        except Exception as e:
            logger.error(f"Sync operation failed: {e}")
            return False

        self.last_sync = datetime.now()
        if success:
            logger.info("Sync operation completed successfully")
        else:
            logger.warning("Sync operation completed with errors")
        return success

    def _wait_with_interrupt_check(self, seconds):
        """Wait for specified seconds while checking for interrupts"""
        end_time = time.time() + seconds
        while time.time() < end_time and self.running:
            time.sleep(max(0, min(1, end_time - time.time())))

    def run_daemon(self):
        """Run as daemon with scheduled syncs"""
        logger.info("Starting anniversary sync daemon...")
        if self.sync_interval_hours > 0:
            logger.info(f"Sync interval: every {self.sync_interval_hours} hours")
        else:
            logger.info(f"Sync schedule: {self.sync_schedule}")
            logger.info(f"Next sync: {self.next_sync_time().strftime('%Y-%m-%d %H:%M:%S')}")

        if self.startup_delay > 0:
            logger.info(f"Waiting {self.startup_delay} seconds before starting...")
            self._wait_with_interrupt_check(self.startup_delay)

        if not self.running:
            logger.info("Shutdown requested during startup delay")
            return

        logger.info("Running initial sync...")
        self.perform_sync()

        loop_count = 0
        while self.running:
            loop_count += 1
            if self.should_sync():
                self.perform_sync()

            # Show we're alive once an hour
            if loop_count % 60 == 0:
                logger.info(f"Scheduler daemon running - next sync: "
                            f"{self.next_sync_time().strftime('%Y-%m-%d %H:%M:%S')}")

            self._wait_with_interrupt_check(TICK_SECONDS)

        logger.info("Scheduler daemon stopped")
