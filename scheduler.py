import schedule
import time
from datetime import datetime


class AlertScheduler:
    """
    Hourly scheduler for the anomaly detector run.
    """
    def __init__(self, job, minute=5, logger=None, scheduler=None):
        """
        Initialize the scheduler.

        Args:
            job (callable): Function running one alerting run
            minute (int): Minute past each hour to run at (0-59)
            logger (object, optional): Logger object for recording events
            scheduler (object, optional): schedule.Scheduler to use instead of the default one
        """
        if not 0 <= minute <= 59:
            raise ValueError(f"minute must be between 0 and 59, got {minute}")
        self.job = job
        self.minute = minute
        self.logger = logger
        self.scheduler = scheduler or schedule.Scheduler()
        self.running = False
        self.last_run = None
        self.last_error = None
        self.run_history = []

    def _run_job(self):
        """Run the job once, recording the outcome without letting errors stop the loop"""
        started = datetime.now()
        self.last_run = started
        try:
            if self.logger:
                self.logger.info("Starting scheduled anomaly check")
            result = self.job()
            self.last_error = None
            self.run_history.append({'start_time': started.isoformat(), 'status': 'completed',
                                     'end_time': datetime.now().isoformat()})
            return result
        except Exception as e:
            self.last_error = str(e)
            self.run_history.append({'start_time': started.isoformat(), 'status': 'failed',
                                     'end_time': datetime.now().isoformat(), 'error': str(e)})
            if self.logger:
                self.logger.error(f"Scheduled anomaly check failed: {str(e)}")
            return None

    def start(self):
        """Register the hourly job"""
        self.scheduler.every().hour.at(f":{self.minute:02d}").do(self._run_job)
        self.running = True
        if self.logger:
            self.logger.info(f"Anomaly check scheduled hourly at minute {self.minute:02d}")

    def stop(self):
        self.scheduler.clear()
        self.running = False

    def next_run(self):
        return self.scheduler.next_run

    def run_forever(self, poll_seconds=30):
        """Block, running pending jobs until stop() is called"""
        if not self.running:
            self.start()
        while self.running:
            self.scheduler.run_pending()
            time.sleep(poll_seconds)
