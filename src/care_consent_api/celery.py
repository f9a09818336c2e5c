import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('care_consent_api')

# every CELERY_* setting in config/settings.py
app.config_from_object('django.conf:settings', namespace='CELERY')

# tasks live next to their adapters, not inside INSTALLED_APPS
app.autodiscover_tasks(['care_consent.adapters.message_broker'])
