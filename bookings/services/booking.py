"""
Booking workflow: availability first, then pricing, then persistence.

Vehicles and their occupying bookings are loaded once into a BookingContext
and passed around explicitly, so the checks run against the same snapshot the
operator saw when the form was rendered.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from django.db import transaction

from ..models import Customer, Rental, Vehicle
from .availability import AvailabilityResult, BookingSpan, ExistingBooking, check_availability, free_vehicle_ids
from .errors import BookingError
from .pricing import PriceQuote, compute_price

logger = logging.getLogger(__name__)


def rental_to_booking(rental: Rental) -> ExistingBooking:
    return ExistingBooking(
        vehicle_id=rental.vehicle_id,
        span=rental.span,
        reference=rental.pk,
        label=rental.contract_number or f"#{rental.pk}",
    )


@dataclass
class BookingEvaluation:
    availability: AvailabilityResult | None = None
    quote: PriceQuote | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and self.quote is not None and bool(self.availability and self.availability.available)


@dataclass
class BookingContext:
    vehicles: list[Vehicle]
    bookings: list[ExistingBooking]

    def __post_init__(self):
        self._by_vehicle: dict = defaultdict(list)
        for booking in self.bookings:
            self._by_vehicle[booking.vehicle_id].append(booking)

    def bookings_for(self, vehicle_id) -> list[ExistingBooking]:
        return list(self._by_vehicle.get(vehicle_id, ()))

    def check(self, vehicle: Vehicle, span: BookingSpan) -> AvailabilityResult:
        return check_availability(span, self.bookings_for(vehicle.pk))

    def available_vehicles(self, span: BookingSpan) -> list[Vehicle]:
        free_ids = set(free_vehicle_ids(span, self._by_vehicle, [vehicle.pk for vehicle in self.vehicles]))
        return [vehicle for vehicle in self.vehicles if vehicle.pk in free_ids]

    def quote(self, vehicle: Vehicle, category: str, span: BookingSpan | None = None) -> PriceQuote:
        if span is None:
            return compute_price(vehicle.rate_table, category)
        return compute_price(vehicle.rate_table, category, span.start, span.end)

    def evaluate(self, vehicle: Vehicle, category: str, span: BookingSpan) -> BookingEvaluation:
        """Run both checks and collect user-facing messages instead of raising."""
        evaluation = BookingEvaluation()
        evaluation.availability = self.check(vehicle, span)
        if not evaluation.availability.available:
            labels = ", ".join(booking.label for booking in evaluation.availability.conflicts)
            evaluation.errors.append(f"Vehicle {vehicle.license_plate} is already booked in this period ({labels}).")
        try:
            evaluation.quote = self.quote(vehicle, category, span)
        except BookingError as exc:
            evaluation.errors.append(str(exc))
        if evaluation.errors:
            logger.info(
                "Booking rejected",
                extra={"vehicle_id": vehicle.pk, "category": category, "span": str(span), "errors": evaluation.errors},
            )
        return evaluation


def occupying_rentals(exclude_rental: Rental | None = None):
    queryset = Rental.objects.filter(status__in=Rental.OCCUPYING_STATUSES)
    if exclude_rental is not None and exclude_rental.pk:
        queryset = queryset.exclude(pk=exclude_rental.pk)
    return queryset


def load_booking_context(exclude_rental: Rental | None = None, vehicles: Iterable[Vehicle] | None = None) -> BookingContext:
    """Snapshot active vehicles and every booking that still occupies one."""
    if vehicles is None:
        vehicles = Vehicle.objects.filter(is_active=True)
    bookings = [rental_to_booking(rental) for rental in occupying_rentals(exclude_rental)]
    return BookingContext(vehicles=list(vehicles), bookings=bookings)


def create_rental(
    context: BookingContext,
    vehicle: Vehicle,
    customer: Customer,
    category: str,
    start: datetime,
    end: datetime,
    created_by=None,
) -> Rental:
    """
    Persist a pending rental priced by the engine.

    Raises BookingError when the span is invalid, the vehicle is taken or the
    duration is not priced for the vehicle.
    """
    span = BookingSpan(start, end)
    evaluation = context.evaluate(vehicle, category, span)
    if not evaluation.ok:
        raise BookingError(" ".join(evaluation.errors))

    with transaction.atomic():
        rental = Rental.objects.create(
            vehicle=vehicle,
            customer=customer,
            start_at=span.start,
            end_at=span.end,
            duration_category=category,
            unit_rate=evaluation.quote.unit_rate,
            total_price=evaluation.quote.amount,
            status="pending",
            created_by=created_by,
        )
    logger.info(
        "Rental created",
        extra={"rental_id": rental.pk, "contract_number": rental.contract_number, "total_price": str(rental.total_price)},
    )
    return rental
