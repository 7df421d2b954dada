from collections import OrderedDict
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from ..models import Customer, Rental, RentalRequest, Vehicle


def dashboard_summary():
    """Basic counts for the dashboard cards."""
    return {
        "vehicles_count": Vehicle.objects.count(),
        "customers_count": Customer.objects.count(),
        "active_rentals": Rental.objects.filter(status="active").count(),
        "pending_rentals": Rental.objects.filter(status="pending").count(),
        "pending_requests": RentalRequest.objects.filter(status="pending").count(),
    }


def upcoming_returns(days=None, now=None):
    """Active rentals that end between now and the next `days` days, soonest first."""
    if days is None:
        days = int(getattr(settings, "UPCOMING_RETURNS_DAYS", 7))
    now = now or timezone.now()
    return list(
        Rental.objects.filter(status="active", end_at__gte=now, end_at__lte=now + timedelta(days=days))
        .select_related("vehicle", "customer")
        .order_by("end_at")
    )


def rentals_by_start_date(queryset=None):
    """
    Group rentals by local start date for the calendar view.

    Returns an ordered mapping {date: [rental, ...]} sorted by date, cancelled
    rentals left out.
    """
    if queryset is None:
        queryset = Rental.objects.exclude(status="cancelled")
    rentals = queryset.select_related("vehicle", "customer").order_by("start_at", "id")

    grouped = OrderedDict()
    for rental in rentals:
        day = timezone.localtime(rental.start_at).date()
        grouped.setdefault(day, []).append(rental)
    return grouped
