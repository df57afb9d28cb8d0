"""
Celery configuration for the experiences booking platform.

Handles async notification delivery and the periodic reservation jobs:
expiry sweeps, post-experience completion checks and payout auto-completion.
"""

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('experiences')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django app configs.
app.autodiscover_tasks()

app.conf.beat_schedule = {
    # Critical: expire unanswered requests, unpaid approvals and sessions below minimum
    'sweep-expired-reservations': {
        'task': 'apps.reservations.tasks.sweep_expired_reservations',
        'schedule': crontab(minute='*/5'),  # Every 5 minutes
        'options': {
            'queue': 'critical',
            'routing_key': 'critical.sweep_reservations',
        }
    },

    # Ask suppliers whether yesterday's experiences took place
    'send-completion-checks': {
        'task': 'apps.reservations.tasks.send_completion_checks',
        'schedule': crontab(hour=10, minute=0),  # Daily at 10 AM
        'options': {
            'queue': 'emails',
            'routing_key': 'emails.completion_checks',
        }
    },

    # Pay out bookings nobody disputed within a week
    'auto-complete-bookings': {
        'task': 'apps.reservations.tasks.auto_complete_bookings',
        'schedule': crontab(hour=3, minute=0),  # Daily at 3 AM
        'options': {
            'queue': 'payouts',
            'routing_key': 'payouts.auto_complete',
        }
    },
}

app.conf.task_routes = {
    'apps.reservations.tasks.sweep_expired_reservations': {'queue': 'critical'},
    'apps.reservations.tasks.send_notification_email': {'queue': 'emails'},
    'apps.reservations.tasks.send_completion_checks': {'queue': 'emails'},
    'apps.reservations.tasks.auto_complete_bookings': {'queue': 'payouts'},
}

app.conf.update(
    enable_utc=True,

    # Task execution settings
    task_soft_time_limit=240,
    task_time_limit=300,
    task_acks_late=True,       # Acknowledge after task completion
    worker_prefetch_multiplier=1,  # Process one task at a time for reliability

    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    worker_max_tasks_per_child=1000,  # Restart worker after 1000 tasks

    task_default_queue='default',
    task_default_exchange='default',
    task_default_exchange_type='direct',
    task_default_routing_key='default',
)
