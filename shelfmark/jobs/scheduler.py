import os
from datetime import timedelta

from apscheduler.schedulers.background import BackgroundScheduler

from shelfmark.models import utcnow
from shelfmark.services.feed import prune_events


scheduler = BackgroundScheduler()


def run_feed_prune(app):
    with app.app_context():
        cutoff = utcnow() - timedelta(hours=app.config["FEED_RETENTION_HOURS"])
        removed = prune_events(cutoff)
        if removed:
            app.logger.info("Pruned %s bookmark feed events older than %s", removed, cutoff)
        return removed


def start_scheduler(app):
    if not app.config.get("SCHEDULER_ENABLED", True):
        return
    if os.environ.get("WERKZEUG_RUN_MAIN") == "false":
        return

    interval_minutes = app.config["FEED_PRUNE_INTERVAL_MINUTES"]
    if not scheduler.get_jobs():
        scheduler.add_job(
            run_feed_prune,
            "interval",
            minutes=interval_minutes,
            kwargs={"app": app},
            id="feed_prune",
            replace_existing=True,
        )
        scheduler.start()
