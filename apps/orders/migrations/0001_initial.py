import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(max_length=32, unique=True)),
                (
                    "with_string_service",
                    models.BooleanField(default=False, help_text="주문 시 스트링 교체 서비스를 함께 신청했는지 여부."),
                ),
                (
                    "service_pickup_method",
                    models.CharField(
                        choices=[
                            ("self_send", "고객 직접 발송"),
                            ("courier_visit", "기사 방문 수거"),
                            ("shop_visit", "매장 방문"),
                        ],
                        default="self_send",
                        max_length=20,
                    ),
                ),
                ("customer_name", models.CharField(blank=True, max_length=100)),
                ("customer_email", models.EmailField(blank=True, max_length=254)),
                ("customer_phone", models.CharField(blank=True, max_length=20)),
                ("postal_code", models.CharField(blank=True, max_length=10)),
                ("address", models.CharField(blank=True, max_length=255)),
                ("address_detail", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "주문",
                "verbose_name_plural": "주문",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_id", models.CharField(max_length=64)),
                ("name", models.CharField(max_length=200)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("product", "스트링/상품"),
                            ("racket", "라켓"),
                            ("used_racket", "중고 라켓"),
                            ("service", "서비스"),
                        ],
                        max_length=20,
                    ),
                ),
                ("quantity", models.PositiveSmallIntegerField(default=1)),
                (
                    "mounting_fee",
                    models.PositiveIntegerField(default=0, help_text="교체 공임(원). 0이면 장착 대상이 아닌 상품."),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "verbose_name": "주문 상품",
                "verbose_name_plural": "주문 상품",
                "constraints": [
                    models.UniqueConstraint(fields=("order", "product_id"), name="order_item_unique_product"),
                ],
            },
        ),
        migrations.CreateModel(
            name="RentalOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("rental_number", models.CharField(max_length=32, unique=True)),
                ("racket_name", models.CharField(blank=True, max_length=200)),
                ("racket_quantity", models.PositiveSmallIntegerField(default=1)),
                ("stringing_requested", models.BooleanField(default=False)),
                (
                    "service_pickup_method",
                    models.CharField(
                        choices=[
                            ("self_send", "고객 직접 발송"),
                            ("courier_visit", "기사 방문 수거"),
                            ("shop_visit", "매장 방문"),
                        ],
                        default="self_send",
                        max_length=20,
                    ),
                ),
                ("string_product_id", models.CharField(blank=True, max_length=64)),
                ("string_name", models.CharField(blank=True, max_length=200)),
                ("deposit", models.PositiveIntegerField(default=0)),
                ("rental_fee", models.PositiveIntegerField(default=0)),
                ("string_price", models.PositiveIntegerField(default=0)),
                (
                    "stringing_fee",
                    models.PositiveIntegerField(
                        blank=True,
                        null=True,
                        help_text="결제 시점의 교체 공임 스냅샷. 구버전 대여 건은 비어 있을 수 있음.",
                    ),
                ),
                (
                    "string_mounting_fee",
                    models.PositiveIntegerField(
                        blank=True,
                        null=True,
                        help_text="선택한 스트링 상품의 공임(스냅샷이 없을 때 재계산에 사용).",
                    ),
                ),
                ("customer_name", models.CharField(blank=True, max_length=100)),
                ("customer_email", models.EmailField(blank=True, max_length=254)),
                ("customer_phone", models.CharField(blank=True, max_length=20)),
                ("postal_code", models.CharField(blank=True, max_length=10)),
                ("address", models.CharField(blank=True, max_length=255)),
                ("address_detail", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="rental_orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "라켓 대여",
                "verbose_name_plural": "라켓 대여",
                "ordering": ["-created_at"],
            },
        ),
    ]
