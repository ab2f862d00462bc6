"""
Celery configuration for the group chat service.

Workers run the post-commit fan-out (chat.tasks), push delivery
(notifications.tasks) and attachment cleanup. Redis is both broker and
result backend; tasks are auto-discovered from every installed app.

Run a worker:
    celery -A config worker -l info
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
