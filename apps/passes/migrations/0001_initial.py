import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ServicePass",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("package_size", models.PositiveSmallIntegerField()),
                ("remaining_count", models.PositiveSmallIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "사용 가능"),
                            ("suspended", "일시 정지"),
                            ("expired", "만료"),
                            ("cancelled", "취소"),
                        ],
                        default="active",
                        max_length=20,
                    ),
                ),
                ("issued_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("expires_at", models.DateTimeField()),
                ("source_item_id", models.CharField(blank=True, max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "source_order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="service_passes",
                        to="orders.order",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="service_passes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "패키지 이용권",
                "verbose_name_plural": "패키지 이용권",
                "ordering": ["expires_at"],
                "indexes": [
                    models.Index(fields=["user", "status", "expires_at"], name="service_pass_user_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("remaining_count__lte", models.F("package_size"))),
                        name="service_pass_remaining_within_size",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("source_order__isnull", False)),
                        fields=("source_order", "source_item_id"),
                        name="service_pass_unique_source",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PassConsumption",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("idempotency_key", models.CharField(help_text="차감을 요청한 신청서 ID.", max_length=64)),
                ("units", models.PositiveSmallIntegerField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "service_pass",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="consumptions",
                        to="passes.servicepass",
                    ),
                ),
            ],
            options={
                "verbose_name": "이용권 차감 내역",
                "verbose_name_plural": "이용권 차감 내역",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("service_pass", "idempotency_key"),
                        name="pass_consumption_unique_key",
                    ),
                ],
            },
        ),
    ]
