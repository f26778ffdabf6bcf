"""Celery application; beat runs the periodic job offer sweep."""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "repairhub.settings.settings")

app = Celery("repairhub")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
