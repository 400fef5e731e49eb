"""
Add celery-beat schedule for the auto-confirmation sweep.

Runs escrow.process_auto_confirmations every 15 minutes, completing
escrows whose guests did not confirm receipt before auto_confirm_at.
"""

from django.db import migrations

TASK_NAME = "Process Escrow Auto-Confirmations"


def create_periodic_task(apps, schema_editor):
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=15,
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "escrow.process_auto_confirmations",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Captures delivered escrow holds whose auto-confirmation "
                "deadline has passed without a guest response."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("escrow", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
