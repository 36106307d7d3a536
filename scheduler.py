import logging
from datetime import date
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import get_settings
from database import session_scope
from periods import local_today
from services import TodoService


logger = logging.getLogger(__name__)


def send_due_reminders(session, today: Optional[date] = None) -> int:
    today = today or local_today()
    sent = 0
    for user_id in TodoService.users_with_reminders(session):
        for todo in TodoService(session, user_id).due_reminders(today):
            overdue = todo.due_date < today
            logger.info(
                f"todo_reminder: user={user_id} todo={todo.id} "
                f"due={todo.due_date} overdue={overdue}"
            )
            sent += 1
    return sent


class SchedulerManager:
    def __init__(self) -> None:
        settings = get_settings()
        self.scheduler = BackgroundScheduler(timezone=settings.timezone)

    def _run_job(self, source: str = "manual") -> None:
        logger.info(f"scheduler_run: source={source}")
        with session_scope() as session:
            count = send_due_reminders(session)
            logger.info(f"scheduler_run: source={source} reminders_sent={count}")

    def start(self) -> None:
        self._run_job("startup")

        trigger = CronTrigger(hour=7, minute=0)
        self.scheduler.add_job(
            self._run_job,
            trigger,
            args=["daily_07:00"],
            id="todo_reminders_daily",
            replace_existing=True,
            misfire_grace_time=3600,
        )

        self.scheduler.start()
        logger.info("Scheduler started with daily 07:00 todo reminders")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
