import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import IntegrityError, models, transaction
from django.db.models import F, Q

from .services.availability import BookingSpan
from .services.pricing import DAY, DURATION_CHOICES, RateTable

User = get_user_model()

NON_NEGATIVE = [MinValueValidator(Decimal("0.00"))]


class Vehicle(models.Model):
    brand = models.CharField(max_length=80)
    model = models.CharField(max_length=80, blank=True, default="")
    license_plate = models.CharField(max_length=20, unique=True)
    vin = models.CharField(max_length=50, blank=True, default="", help_text="VIN / číslo karoserie.")
    year = models.PositiveIntegerField(blank=True, null=True)
    rate_four_hour = models.DecimalField(
        max_digits=9,
        decimal_places=2,
        blank=True,
        null=True,
        validators=NON_NEGATIVE,
        help_text="Cena za 4 hodiny. Prázdné = nenabízí se.",
    )
    rate_twelve_hour = models.DecimalField(
        max_digits=9,
        decimal_places=2,
        blank=True,
        null=True,
        validators=NON_NEGATIVE,
        help_text="Cena za 12 hodin.",
    )
    rate_day = models.DecimalField(
        max_digits=9,
        decimal_places=2,
        blank=True,
        null=True,
        validators=NON_NEGATIVE,
        help_text="Cena za den (každý započatý den).",
    )
    rate_month = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        blank=True,
        null=True,
        validators=NON_NEGATIVE,
        help_text="Paušální cena za měsíc.",
    )
    stk_date = models.DateField(blank=True, null=True, help_text="STK platná do.")
    insurance_info = models.CharField(max_length=255, blank=True, default="")
    vignette_until = models.DateField(blank=True, null=True, help_text="Dálniční známka platná do.")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["brand", "license_plate"]

    def __str__(self):
        label = f"{self.brand} {self.model}".strip()
        return f"{label} - {self.license_plate}"

    @property
    def rate_table(self) -> RateTable:
        return RateTable(
            four_hour=self.rate_four_hour,
            twelve_hour=self.rate_twelve_hour,
            day=self.rate_day,
            month=self.rate_month,
        )


class ServiceRecord(models.Model):
    vehicle = models.ForeignKey(Vehicle, on_delete=models.CASCADE, related_name="service_records")
    date = models.DateField()
    description = models.CharField(max_length=255)
    cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"), validators=NON_NEGATIVE)

    class Meta:
        ordering = ["-date", "-id"]

    def __str__(self):
        return f"{self.vehicle.license_plate} {self.date:%Y-%m-%d}: {self.description}"


class Customer(models.Model):
    first_name = models.CharField(max_length=80)
    last_name = models.CharField(max_length=80)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=30, blank=True, default="")
    id_card_number = models.CharField(max_length=30, blank=True, default="", help_text="Číslo OP.")
    drivers_license_number = models.CharField(max_length=30, blank=True, default="", help_text="Číslo ŘP.")
    drivers_license_image = models.ImageField(upload_to="licenses/", blank=True, null=True)
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["last_name", "first_name", "id"]

    def __str__(self):
        return self.full_name

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Rental(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("active", "Active"),
        ("completed", "Completed"),
        ("cancelled", "Cancelled"),
    ]
    # Statuses that keep the vehicle occupied for availability checks.
    OCCUPYING_STATUSES = ("pending", "active", "completed")

    vehicle = models.ForeignKey(Vehicle, on_delete=models.PROTECT, related_name="rentals")
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="rentals")
    contract_number = models.CharField(
        max_length=5,
        unique=True,
        blank=True,
        null=True,
        help_text="Automaticky generované pětimístné číslo smlouvy.",
    )
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    duration_category = models.CharField(max_length=20, choices=DURATION_CHOICES, default=DAY)
    unit_rate = models.DecimalField(max_digits=10, decimal_places=2, validators=NON_NEGATIVE)
    total_price = models.DecimalField(max_digits=10, decimal_places=2, validators=NON_NEGATIVE)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    customer_signature = models.TextField(blank=True, default="", help_text="Podpis nájemce (PNG data URL).")
    company_signature = models.TextField(blank=True, default="", help_text="Podpis pronajímatele (PNG data URL).")
    digital_consent_at = models.DateTimeField(blank=True, null=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-start_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_at__gt=F("start_at")),
                name="rental_end_after_start",
                violation_error_message="End must be after start.",
            ),
        ]

    def __str__(self):
        return self.deal_name

    def clean(self):
        super().clean()
        if self.start_at and self.end_at and self.end_at <= self.start_at:
            raise ValidationError({"end_at": "End must be after start."})

    @property
    def span(self) -> BookingSpan:
        return BookingSpan(self.start_at, self.end_at)

    @property
    def is_signed(self) -> bool:
        return bool(self.customer_signature and self.company_signature)

    @property
    def deal_name(self) -> str:
        """{contract}/{last name}/{plate}/{start date}"""
        contract = self.contract_number or "-----"
        last_name = self.customer.last_name if self.customer_id else "—"
        plate = self.vehicle.license_plate if self.vehicle_id else ""
        date_piece = self.start_at.strftime("%Y-%m-%d") if self.start_at else ""
        return f"{contract}/{last_name}/{plate}/{date_piece}"

    @staticmethod
    def _generate_contract_number() -> str:
        return f"{random.randint(10000, 99999):05d}"

    @classmethod
    def generate_unique_contract_number(cls) -> str:
        for _ in range(50):
            candidate = cls._generate_contract_number()
            if not cls.objects.filter(contract_number=candidate).exists():
                return candidate
        raise RuntimeError("Could not generate a unique contract number.")

    def ensure_contract_number(self, force: bool = False):
        if self.contract_number and not force:
            return
        self.contract_number = self.generate_unique_contract_number()

    def save(self, *args, **kwargs):
        for _ in range(3):
            if not self.contract_number:
                self.ensure_contract_number()
            try:
                # Savepoint per attempt so a collision does not break an outer transaction.
                with transaction.atomic():
                    return super().save(*args, **kwargs)
            except IntegrityError:
                if not self._state.adding:
                    raise
                # Contract number collision, try again with a fresh number.
                self.contract_number = None
        return super().save(*args, **kwargs)


class RentalRequest(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("rejected", "Rejected"),
    ]

    first_name = models.CharField(max_length=80)
    last_name = models.CharField(max_length=80)
    email = models.EmailField()
    phone = models.CharField(max_length=30)
    id_card_number = models.CharField(max_length=30)
    drivers_license_number = models.CharField(max_length=30)
    drivers_license_image = models.ImageField(upload_to="licenses/requests/", blank=True, null=True)
    digital_consent_at = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    customer = models.ForeignKey(
        Customer,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="requests",
        help_text="Zákazník vytvořený po schválení.",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.first_name} {self.last_name} ({self.get_status_display()})"


class ContractTemplate(models.Model):
    FORMAT_CHOICES = [
        ("html", "HTML"),
        ("docx", "DOCX"),
        ("pdf", "PDF"),
    ]

    name = models.CharField(max_length=100)
    file = models.FileField(upload_to="contract_templates/", blank=True, null=True)
    body_html = models.TextField(blank=True, null=True)
    format = models.CharField(max_length=10, choices=FORMAT_CHOICES, default="html")
    description = models.TextField(blank=True, null=True)

    def __str__(self):
        return self.name
