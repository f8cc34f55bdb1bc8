import os

from apscheduler.schedulers.background import BackgroundScheduler

from smartmark.services.realtime import prune_realtime_state


scheduler = BackgroundScheduler()


def run_realtime_prune(app):
    with app.app_context():
        events_removed, subscriptions_removed = prune_realtime_state(
            retention_hours=app.config["REALTIME_EVENT_RETENTION_HOURS"],
            idle_hours=app.config["REALTIME_SUBSCRIPTION_IDLE_HOURS"],
        )
        if events_removed or subscriptions_removed:
            app.logger.info(
                "Pruned %s push events and %s idle subscriptions",
                events_removed,
                subscriptions_removed,
            )


def start_scheduler(app):
    if not app.config.get("SCHEDULER_ENABLED", True):
        return
    if os.environ.get("WERKZEUG_RUN_MAIN") == "false":
        return

    interval_minutes = app.config["REALTIME_PRUNE_INTERVAL_MINUTES"]
    if not scheduler.get_jobs():
        scheduler.add_job(
            run_realtime_prune,
            "interval",
            minutes=interval_minutes,
            kwargs={"app": app},
            id="realtime_prune",
            replace_existing=True,
        )
        scheduler.start()
