"""
Add celery-beat schedules for webhook maintenance.

retry_failed_webhooks requeues FAILED events every 5 minutes and
cleanup_stuck_webhooks fails events left PROCESSING by a dead worker
every 15 minutes.
"""

from django.db import migrations

SCHEDULES = [
    (
        "Retry Failed Webhooks",
        "payments.tasks.retry_failed_webhooks",
        5,
        "Requeues FAILED webhook events that have attempts remaining.",
    ),
    (
        "Cleanup Stuck Webhooks",
        "payments.tasks.cleanup_stuck_webhooks",
        15,
        "Marks webhook events stuck in PROCESSING as FAILED so they can be retried.",
    ),
]


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for webhook maintenance."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for name, task, minutes, description in SCHEDULES:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=minutes,
            period="minutes",
        )
        PeriodicTask.objects.get_or_create(
            name=name,
            defaults={
                "task": task,
                "interval": schedule,
                "enabled": True,
                "description": description,
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[name for name, *_ in SCHEDULES],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0018_improve_crontab_helptext"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
