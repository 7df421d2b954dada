import base64
import io
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from PIL import Image, ImageDraw

from bookings.models import Customer, Rental, Vehicle

START = datetime(2024, 6, 3, 9, 0, tzinfo=dt_timezone.utc)


def make_vehicle(**overrides):
    values = {
        "brand": "Renault",
        "model": "Master",
        "license_plate": "1BX0001",
        "rate_four_hour": Decimal("690"),
        "rate_day": Decimal("1290"),
    }
    values.update(overrides)
    return Vehicle.objects.create(**values)


def make_customer(**overrides):
    values = {"first_name": "Jan", "last_name": "Novák", "email": "jan@example.com"}
    values.update(overrides)
    return Customer.objects.create(**values)


def make_rental(vehicle, customer, start=START, days=1, status="pending"):
    return Rental.objects.create(
        vehicle=vehicle,
        customer=customer,
        start_at=start,
        end_at=start + timedelta(days=days),
        duration_category="day",
        unit_rate=vehicle.rate_day,
        total_price=vehicle.rate_day * days,
        status=status,
    )


def png_data_url(drawn=True, fmt="PNG", size=(120, 40)):
    image = Image.new("RGBA", size, (255, 255, 255, 0))
    if drawn:
        ImageDraw.Draw(image).line((5, 20, 110, 25), fill=(0, 0, 0, 255), width=3)
    buffer = io.BytesIO()
    image.convert("RGB" if fmt == "JPEG" else "RGBA").save(buffer, format=fmt)
    mime = "png" if fmt == "PNG" else fmt.lower()
    return f"data:image/{mime};base64," + base64.b64encode(buffer.getvalue()).decode("ascii")
