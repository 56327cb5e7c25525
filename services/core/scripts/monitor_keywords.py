#!/usr/bin/env python3
"""Trigger a keyword monitoring run outside the beat schedule.

Run this inside the container:
    docker exec redwatch-core python /app/scripts/monitor_keywords.py
    docker exec redwatch-core python /app/scripts/monitor_keywords.py --email owner@example.com
"""

import argparse

from celery import Celery

from redwatch_core.config import get_settings


def main():
    parser = argparse.ArgumentParser(description="Enqueue a keyword monitoring run")
    parser.add_argument("--email", help="Only dispatch for the user with this email")
    parser.add_argument("--user-id", type=int, help="Only dispatch for this user id")
    args = parser.parse_args()

    settings = get_settings()
    celery_app = Celery(
        "redwatch",
        broker=settings.celery_broker_url,
        backend=settings.celery_result_backend,
    )

    if args.email or args.user_id:
        task = celery_app.send_task(
            "monitor.run_user",
            kwargs={"user_id": args.user_id, "email": args.email},
            queue="monitoring",
        )
    else:
        task = celery_app.send_task("monitor.run_all", queue="monitoring")

    print(f"Enqueued task {task.id}")


if __name__ == "__main__":
    main()
