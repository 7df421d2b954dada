from datetime import datetime, timedelta, timezone as dt_timezone

from django.test import SimpleTestCase

from bookings.services.availability import (
    BookingSpan,
    ExistingBooking,
    InvalidSpanError,
    check_availability,
    free_vehicle_ids,
    spans_overlap,
)

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=dt_timezone.utc)


def span(start_hours, end_hours):
    return BookingSpan(T0 + timedelta(hours=start_hours), T0 + timedelta(hours=end_hours))


class BookingSpanTests(SimpleTestCase):
    def test_end_must_follow_start(self):
        with self.assertRaises(InvalidSpanError):
            span(2, 2)
        with self.assertRaises(InvalidSpanError):
            span(3, 1)

    def test_missing_bound_is_rejected(self):
        with self.assertRaises(InvalidSpanError):
            BookingSpan(T0, None)


class CheckAvailabilityTests(SimpleTestCase):
    def setUp(self):
        self.existing = [
            ExistingBooking(vehicle_id=1, span=span(0, 24), reference=10, label="10001"),
            ExistingBooking(vehicle_id=1, span=span(48, 72), reference=11, label="10002"),
        ]

    def test_touching_boundaries_do_not_conflict(self):
        result = check_availability(span(24, 48), self.existing)

        self.assertTrue(result.available)
        self.assertEqual(result.conflicts, ())

    def test_overlap_is_reported_with_conflicting_booking(self):
        result = check_availability(span(20, 30), self.existing)

        self.assertFalse(result.available)
        self.assertEqual([booking.reference for booking in result.conflicts], [10])

    def test_span_covering_several_bookings_lists_all_conflicts(self):
        result = check_availability(span(-1, 100), self.existing)

        self.assertEqual(len(result.conflicts), 2)

    def test_no_existing_bookings_means_available(self):
        self.assertTrue(check_availability(span(0, 1), []).available)

    def test_overlap_is_symmetric(self):
        a, b = span(0, 10), span(5, 15)

        self.assertTrue(spans_overlap(a, b))
        self.assertTrue(spans_overlap(b, a))
        self.assertFalse(spans_overlap(span(0, 5), span(5, 10)))
        self.assertFalse(spans_overlap(span(5, 10), span(0, 5)))

    def test_free_vehicle_ids_keeps_order(self):
        by_vehicle = {1: self.existing}

        self.assertEqual(free_vehicle_ids(span(1, 2), by_vehicle, [3, 1, 2]), [3, 2])


class SameDayScenarioTests(SimpleTestCase):
    def setUp(self):
        day = datetime(2024, 1, 1, tzinfo=dt_timezone.utc)
        self.at = lambda hour: day.replace(hour=hour)
        self.existing = [ExistingBooking(vehicle_id="van", span=BookingSpan(self.at(10), self.at(14)), label="A")]

    def test_rental_starting_when_previous_ends(self):
        result = check_availability(BookingSpan(self.at(14), self.at(18)), self.existing)

        self.assertTrue(result.available)

    def test_rental_starting_mid_booking(self):
        result = check_availability(BookingSpan(self.at(12), self.at(16)), self.existing)

        self.assertFalse(result.available)
        self.assertEqual(result.conflicts, tuple(self.existing))

    def test_repeated_checks_agree(self):
        candidate = BookingSpan(self.at(12), self.at(16))

        self.assertEqual(check_availability(candidate, self.existing), check_availability(candidate, self.existing))
