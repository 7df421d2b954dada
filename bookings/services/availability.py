from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Hashable, Iterable, Mapping

from .errors import BookingError


class InvalidSpanError(BookingError):
    """A booking span whose end is not after its start."""


@dataclass(frozen=True)
class BookingSpan:
    """Half-open interval [start, end); adjacent spans may touch without overlapping."""

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start is None or self.end is None:
            raise InvalidSpanError("Both start and end are required.")
        if self.end <= self.start:
            raise InvalidSpanError("End must be after start.")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def __str__(self):
        return f"{self.start.isoformat()} -> {self.end.isoformat()}"


@dataclass(frozen=True)
class ExistingBooking:
    vehicle_id: Hashable
    span: BookingSpan
    reference: Hashable = None
    label: str = ""


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    conflicts: tuple[ExistingBooking, ...] = ()


def spans_overlap(a: BookingSpan, b: BookingSpan) -> bool:
    return a.start < b.end and b.start < a.end


def check_availability(candidate: BookingSpan, existing: Iterable[ExistingBooking]) -> AvailabilityResult:
    """
    Check a candidate span against the bookings already held on one vehicle.

    Every booking passed in is treated as occupying the vehicle; cancelled ones
    must be filtered out by the caller.
    """
    conflicts = tuple(booking for booking in existing if spans_overlap(candidate, booking.span))
    return AvailabilityResult(available=not conflicts, conflicts=conflicts)


def free_vehicle_ids(
    candidate: BookingSpan,
    bookings_by_vehicle: Mapping[Hashable, Iterable[ExistingBooking]],
    vehicle_ids: Iterable[Hashable],
) -> list:
    return [
        vehicle_id
        for vehicle_id in vehicle_ids
        if check_availability(candidate, bookings_by_vehicle.get(vehicle_id, ())).available
    ]
