from decimal import Decimal

import django.core.validators
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
            name="ContractTemplate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("file", models.FileField(blank=True, null=True, upload_to="contract_templates/")),
                ("body_html", models.TextField(blank=True, null=True)),
                (
                    "format",
                    models.CharField(
                        choices=[("html", "HTML"), ("docx", "DOCX"), ("pdf", "PDF")], default="html", max_length=10
                    ),
                ),
                ("description", models.TextField(blank=True, null=True)),
            ],
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("first_name", models.CharField(max_length=80)),
                ("last_name", models.CharField(max_length=80)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("phone", models.CharField(blank=True, default="", max_length=30)),
                ("id_card_number", models.CharField(blank=True, default="", help_text="Číslo OP.", max_length=30)),
                (
                    "drivers_license_number",
                    models.CharField(blank=True, default="", help_text="Číslo ŘP.", max_length=30),
                ),
                ("drivers_license_image", models.ImageField(blank=True, null=True, upload_to="licenses/")),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["last_name", "first_name", "id"],
            },
        ),
        migrations.CreateModel(
            name="Vehicle",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("brand", models.CharField(max_length=80)),
                ("model", models.CharField(blank=True, default="", max_length=80)),
                ("license_plate", models.CharField(max_length=20, unique=True)),
                ("vin", models.CharField(blank=True, default="", help_text="VIN / číslo karoserie.", max_length=50)),
                ("year", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "rate_four_hour",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Cena za 4 hodiny. Prázdné = nenabízí se.",
                        max_digits=9,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "rate_twelve_hour",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Cena za 12 hodin.",
                        max_digits=9,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "rate_day",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Cena za den (každý započatý den).",
                        max_digits=9,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "rate_month",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Paušální cena za měsíc.",
                        max_digits=10,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("stk_date", models.DateField(blank=True, help_text="STK platná do.", null=True)),
                ("insurance_info", models.CharField(blank=True, default="", max_length=255)),
                (
                    "vignette_until",
                    models.DateField(blank=True, help_text="Dálniční známka platná do.", null=True),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["brand", "license_plate"],
            },
        ),
        migrations.CreateModel(
            name="ServiceRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("description", models.CharField(max_length=255)),
                (
                    "cost",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "vehicle",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="service_records",
                        to="bookings.vehicle",
                    ),
                ),
            ],
            options={
                "ordering": ["-date", "-id"],
            },
        ),
        migrations.CreateModel(
            name="RentalRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("first_name", models.CharField(max_length=80)),
                ("last_name", models.CharField(max_length=80)),
                ("email", models.EmailField(max_length=254)),
                ("phone", models.CharField(max_length=30)),
                ("id_card_number", models.CharField(max_length=30)),
                ("drivers_license_number", models.CharField(max_length=30)),
                (
                    "drivers_license_image",
                    models.ImageField(blank=True, null=True, upload_to="licenses/requests/"),
                ),
                ("digital_consent_at", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        help_text="Zákazník vytvořený po schválení.",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="requests",
                        to="bookings.customer",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="Rental",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "contract_number",
                    models.CharField(
                        blank=True,
                        help_text="Automaticky generované pětimístné číslo smlouvy.",
                        max_length=5,
                        null=True,
                        unique=True,
                    ),
                ),
                ("start_at", models.DateTimeField()),
                ("end_at", models.DateTimeField()),
                (
                    "duration_category",
                    models.CharField(
                        choices=[
                            ("four_hour", "4 hours"),
                            ("twelve_hour", "12 hours"),
                            ("day", "Per day"),
                            ("month", "Month"),
                        ],
                        default="day",
                        max_length=20,
                    ),
                ),
                (
                    "unit_rate",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "total_price",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("active", "Active"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "customer_signature",
                    models.TextField(blank=True, default="", help_text="Podpis nájemce (PNG data URL)."),
                ),
                (
                    "company_signature",
                    models.TextField(blank=True, default="", help_text="Podpis pronajímatele (PNG data URL)."),
                ),
                ("digital_consent_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rentals",
                        to="bookings.customer",
                    ),
                ),
                (
                    "vehicle",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rentals",
                        to="bookings.vehicle",
                    ),
                ),
            ],
            options={
                "ordering": ["-start_at", "-id"],
            },
        ),
    ]
