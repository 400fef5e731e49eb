"""
Celery application for background and periodic work.

The only periodic job of this project is the escrow auto-confirmation sweep
(`escrow.process_auto_confirmations`). Its schedule is stored in the database
by django-celery-beat (see escrow/migrations/0002_add_auto_confirm_schedule.py)
and run by the beat process with the DatabaseScheduler.

Usage:
    celery -A config worker -l info
    celery -A config beat -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Looks for tasks.py in every installed app
app.autodiscover_tasks()
