import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


FUNDING_CHOICES = [
    ("cash", "무통장 입금"),
    ("package_credit", "패키지 이용권"),
    ("rental_prepaid", "대여 결제 포함"),
]

STATUS_CHOICES = [
    ("draft", "작성 중"),
    ("submitted", "접수 완료"),
    ("in_progress", "작업 중"),
    ("completed", "교체 완료"),
    ("cancelled", "취소"),
    ("expired", "만료"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
        ("passes", "0001_initial"),
        ("scheduling", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Application",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("status", models.CharField(choices=STATUS_CHOICES, default="draft", max_length=20)),
                ("name", models.CharField(blank=True, max_length=100)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=20)),
                ("postal_code", models.CharField(blank=True, max_length=10)),
                ("address", models.CharField(blank=True, max_length=255)),
                ("address_detail", models.CharField(blank=True, max_length=255)),
                (
                    "collection_method",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("self_ship", "직접 발송"),
                            ("courier_pickup", "기사 방문 수거"),
                            ("visit", "매장 방문"),
                        ],
                        max_length=20,
                    ),
                ),
                ("pickup_date", models.DateField(blank=True, null=True)),
                ("pickup_time", models.CharField(blank=True, help_text="수거 희망 시간대.", max_length=20)),
                (
                    "string_selections",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="[{item_id, use_count, name}] 형식의 스트링 선택 목록.",
                    ),
                ),
                ("custom_string_name", models.CharField(blank=True, max_length=200)),
                ("racket_type", models.CharField(blank=True, max_length=200)),
                ("catalog_mounting_fee", models.PositiveIntegerField(blank=True, null=True)),
                ("preferred_date", models.DateField(blank=True, null=True)),
                ("preferred_time", models.TimeField(blank=True, null=True)),
                ("funding_requested", models.CharField(choices=FUNDING_CHOICES, default="cash", max_length=20)),
                ("funding_mode", models.CharField(choices=FUNDING_CHOICES, default="cash", max_length=20)),
                ("bank", models.CharField(blank=True, max_length=50)),
                ("depositor", models.CharField(blank=True, max_length=100)),
                ("requirements", models.TextField(blank=True)),
                ("required_units", models.PositiveSmallIntegerField(default=0)),
                ("base_fee", models.PositiveIntegerField(default=0)),
                ("logistics_fee", models.PositiveIntegerField(default=0)),
                ("total_price", models.PositiveIntegerField(default=0)),
                ("currency", models.CharField(default="KRW", max_length=3)),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "expires_at",
                    models.DateTimeField(blank=True, help_text="작성 중 신청서가 자동 만료되는 시각.", null=True),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stringing_applications",
                        to="orders.order",
                    ),
                ),
                (
                    "pass_consumption",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="application",
                        to="passes.passconsumption",
                    ),
                ),
                (
                    "rental",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stringing_applications",
                        to="orders.rentalorder",
                    ),
                ),
                (
                    "slot_commitment",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="application",
                        to="scheduling.slotcommitment",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stringing_applications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "스트링 교체 신청",
                "verbose_name_plural": "스트링 교체 신청",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "expires_at"], name="application_status_expiry_idx"),
                    models.Index(fields=["user", "status"], name="application_user_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(
                            ("order__isnull", False),
                            ("status__in", ["draft", "submitted"]),
                        ),
                        fields=("order",),
                        name="application_one_active_per_order",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(
                            ("rental__isnull", False),
                            ("status__in", ["draft", "submitted"]),
                        ),
                        fields=("rental",),
                        name="application_one_active_per_rental",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ApplicationLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveSmallIntegerField(default=0)),
                ("racket_label", models.CharField(blank=True, max_length=200)),
                ("string_item_id", models.CharField(blank=True, max_length=64)),
                ("main_tension", models.CharField(blank=True, max_length=10)),
                ("cross_tension", models.CharField(blank=True, max_length=10)),
                ("note", models.CharField(blank=True, max_length=255)),
                (
                    "application",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="stringing.application",
                    ),
                ),
            ],
            options={
                "verbose_name": "신청 라켓",
                "verbose_name_plural": "신청 라켓",
                "ordering": ["application", "position"],
            },
        ),
        migrations.CreateModel(
            name="ApplicationHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=STATUS_CHOICES, max_length=20)),
                ("description", models.CharField(max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "application",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="history",
                        to="stringing.application",
                    ),
                ),
            ],
            options={
                "verbose_name": "신청 이력",
                "verbose_name_plural": "신청 이력",
                "ordering": ["created_at", "id"],
            },
        ),
    ]
