from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from bookings.models import ContractTemplate, Customer, Vehicle
from bookings.services.booking import create_rental, load_booking_context
from bookings.services.errors import BookingError
from bookings.services.pricing import DAY

DEMO_TEMPLATE = """<!doctype html>
<html lang="cs"><head><meta charset="utf-8"><title>Smlouva {{ rental.contract_number }}</title></head>
<body>
<h1>Smlouva o pronájmu vozidla č. {{ rental.contract_number }}</h1>
<p>Pronajímatel: {{ company.name }}, {{ company.address }}, IČO {{ company.id }}</p>
<p>Nájemce: {{ customer.full_name }}, OP {{ customer.id_card_number }}, ŘP {{ customer.drivers_license_number }}</p>
<p>Vozidlo: {{ vehicle.brand }} {{ vehicle.model }}, SPZ {{ vehicle.license_plate }}</p>
<p>Od {{ rental.start_at|date:"d.m.Y H:i" }} do {{ rental.end_at|date:"d.m.Y H:i" }}, celkem {{ rental.total_price }} Kč</p>
</body></html>
"""


class Command(BaseCommand):
    help = "Create a demo vehicle, customer, rental and HTML contract template."

    def add_arguments(self, parser):
        parser.add_argument("--days", type=int, default=3, help="Length of the demo rental in days.")

    def handle(self, *args, **options):
        days = options["days"]
        if days < 1:
            raise CommandError("--days must be at least 1.")

        vehicle, _ = Vehicle.objects.get_or_create(
            license_plate="1BX0001",
            defaults={
                "brand": "Renault",
                "model": "Master",
                "year": 2021,
                "rate_four_hour": Decimal("690.00"),
                "rate_twelve_hour": Decimal("990.00"),
                "rate_day": Decimal("1290.00"),
                "rate_month": Decimal("24900.00"),
            },
        )
        customer, _ = Customer.objects.get_or_create(
            email="demo@example.com",
            defaults={
                "first_name": "Jan",
                "last_name": "Novák",
                "phone": "+420 777 000 111",
                "id_card_number": "123456789",
                "drivers_license_number": "EF123456",
            },
        )

        start = timezone.localtime().replace(minute=0, second=0, microsecond=0) + timedelta(days=1)
        end = start + timedelta(days=days)
        try:
            rental = create_rental(load_booking_context(), vehicle, customer, DAY, start, end)
        except BookingError as exc:
            self.stdout.write(self.style.WARNING(f"Demo rental skipped: {exc}"))
            rental = None

        ContractTemplate.objects.get_or_create(
            name="Demo HTML smlouva",
            format="html",
            defaults={
                "body_html": DEMO_TEMPLATE,
                "description": "Jednoduchá HTML šablona pro test generování smluv.",
            },
        )

        self.stdout.write(self.style.SUCCESS("Seeded demo data:"))
        self.stdout.write(f"- Vehicle: {vehicle}")
        self.stdout.write(f"- Customer: {customer}")
        if rental is not None:
            self.stdout.write(f"- Rental: {rental.contract_number} ({rental.total_price} Kč)")
        self.stdout.write("- Contract template: Demo HTML smlouva (html)")
