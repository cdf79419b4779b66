import datetime

import django.db.models.deletion
from django.db import migrations, models

import apps.scheduling.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ScheduleSettings",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_time", models.TimeField(default=datetime.time(10, 0))),
                ("end_time", models.TimeField(default=datetime.time(19, 0))),
                ("interval_minutes", models.PositiveSmallIntegerField(default=30)),
                (
                    "capacity",
                    models.PositiveSmallIntegerField(default=1, help_text="한 시간대에 받을 수 있는 최대 작업 수."),
                ),
                (
                    "business_days",
                    models.JSONField(
                        default=apps.scheduling.models.default_business_days,
                        help_text="영업 요일 (월=0 … 일=6).",
                    ),
                ),
                ("holidays", models.JSONField(blank=True, default=list, help_text="휴무일 목록 (YYYY-MM-DD).")),
                ("booking_window_days", models.PositiveSmallIntegerField(default=30)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "예약 설정",
                "verbose_name_plural": "예약 설정",
            },
        ),
        migrations.CreateModel(
            name="ScheduleException",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField(unique=True)),
                ("closed", models.BooleanField(default=False)),
                ("start_time", models.TimeField(blank=True, null=True)),
                ("end_time", models.TimeField(blank=True, null=True)),
                ("interval_minutes", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("capacity", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("reason", models.CharField(blank=True, max_length=255)),
            ],
            options={
                "verbose_name": "예외 일정",
                "verbose_name_plural": "예외 일정",
                "ordering": ["date"],
            },
        ),
        migrations.CreateModel(
            name="TimeSlot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("time", models.TimeField()),
                ("capacity", models.PositiveSmallIntegerField()),
                ("committed_units", models.PositiveSmallIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "예약 시간대",
                "verbose_name_plural": "예약 시간대",
                "ordering": ["date", "time"],
                "constraints": [
                    models.UniqueConstraint(fields=("date", "time"), name="time_slot_unique_bucket"),
                    models.CheckConstraint(
                        condition=models.Q(("committed_units__lte", models.F("capacity"))),
                        name="time_slot_within_capacity",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SlotCommitment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("idempotency_key", models.CharField(max_length=64, unique=True)),
                ("units", models.PositiveSmallIntegerField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "slot",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="commitments",
                        to="scheduling.timeslot",
                    ),
                ),
            ],
            options={
                "verbose_name": "시간대 확정",
                "verbose_name_plural": "시간대 확정",
                "ordering": ["-created_at"],
            },
        ),
    ]
