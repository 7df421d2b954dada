from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from bookings.models import Customer, Rental, RentalRequest

from .helpers import START, make_customer, make_rental, make_vehicle, png_data_url


def _local(value):
    return value.strftime("%Y-%m-%dT%H:%M:%S+00:00")


class LoggedInTestCase(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="tester", password="pass")
        self.client.force_login(self.user)
        self.vehicle = make_vehicle()
        self.customer = make_customer()


class AuthTests(TestCase):
    def test_dashboard_requires_login(self):
        response = self.client.get(reverse("bookings:dashboard"))

        self.assertEqual(response.status_code, 302)
        self.assertIn(reverse("login"), response["Location"])


class DashboardTests(LoggedInTestCase):
    def test_dashboard_shows_counts(self):
        make_rental(self.vehicle, self.customer, status="active")

        response = self.client.get(reverse("bookings:dashboard"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context["vehicles_count"], 1)
        self.assertEqual(response.context["active_rentals"], 1)


class RentalCreateViewTests(LoggedInTestCase):
    def _post(self, **overrides):
        data = {
            "vehicle": self.vehicle.pk,
            "customer": self.customer.pk,
            "duration_category": "day",
            "start_at": "2024-06-03T09:00",
            "end_at": "2024-06-04T10:00",
        }
        data.update(overrides)
        return self.client.post(reverse("bookings:rental_create"), data)

    def test_price_is_computed_server_side(self):
        response = self._post(total_price="1")

        rental = Rental.objects.get()
        self.assertRedirects(response, reverse("bookings:rental_contract", args=[rental.pk]), fetch_redirect_response=False)
        self.assertEqual(rental.total_price, Decimal("2580"))
        self.assertEqual(rental.created_by, self.user)

    def test_conflicting_booking_shows_error(self):
        self._post()
        response = self._post(start_at="2024-06-04T08:00", end_at="2024-06-05T08:00")

        self.assertEqual(response.status_code, 200)
        self.assertIn("already booked", " ".join(response.context["form"].errors["vehicle"]))
        self.assertEqual(Rental.objects.count(), 1)

    def test_end_before_start_is_rejected(self):
        response = self._post(end_at="2024-06-02T09:00")

        self.assertEqual(response.status_code, 200)
        self.assertIn("end_at", response.context["form"].errors)

    def test_unpriced_duration_is_rejected(self):
        response = self._post(duration_category="month", end_at="")

        self.assertEqual(response.status_code, 200)
        self.assertIn("duration_category", response.context["form"].errors)

    def test_flat_rate_fills_default_end(self):
        self._post(duration_category="four_hour", end_at="")

        rental = Rental.objects.get()
        self.assertEqual(rental.end_at - rental.start_at, timedelta(hours=4))
        self.assertEqual(rental.total_price, Decimal("690"))

    def test_editing_keeps_own_period(self):
        self._post()
        rental = Rental.objects.get()

        response = self.client.post(
            reverse("bookings:rental_update", args=[rental.pk]),
            {
                "vehicle": self.vehicle.pk,
                "customer": self.customer.pk,
                "duration_category": "day",
                "start_at": "2024-06-03T09:00",
                "end_at": "2024-06-05T09:00",
            },
        )

        self.assertEqual(response.status_code, 302)
        rental.refresh_from_db()
        self.assertEqual(rental.total_price, Decimal("2580"))


class QuoteEndpointTests(LoggedInTestCase):
    def test_day_quote(self):
        response = self.client.get(
            reverse("bookings:rental_quote"),
            {
                "vehicle": self.vehicle.pk,
                "category": "day",
                "start": _local(START),
                "end": _local(START + timedelta(hours=25)),
            },
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True, "amount": "2580.00", "category": "day", "multiplier": 2, "unit_rate": "1290.00"})

    def test_flat_quote_without_span(self):
        response = self.client.get(reverse("bookings:rental_quote"), {"vehicle": self.vehicle.pk, "category": "four_hour"})

        self.assertEqual(response.json()["amount"], "690.00")

    def test_unpriced_category_is_400(self):
        response = self.client.get(reverse("bookings:rental_quote"), {"vehicle": self.vehicle.pk, "category": "month"})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["ok"])

    def test_missing_vehicle_is_400(self):
        response = self.client.get(reverse("bookings:rental_quote"), {"category": "day"})

        self.assertEqual(response.status_code, 400)


class AvailabilityEndpointTests(LoggedInTestCase):
    def test_lists_free_and_busy_vehicles(self):
        free_van = make_vehicle(license_plate="2BX0002")
        rental = make_rental(self.vehicle, self.customer, days=2)

        response = self.client.get(
            reverse("bookings:vehicle_availability"),
            {"start": _local(START + timedelta(days=1)), "end": _local(START + timedelta(days=3))},
        )

        payload = response.json()
        self.assertEqual([item["id"] for item in payload["available"]], [free_van.pk])
        self.assertEqual(payload["unavailable"][0]["id"], self.vehicle.pk)
        self.assertEqual(payload["unavailable"][0]["conflicts"][0]["rental"], rental.pk)

    def test_exclude_ignores_the_edited_rental(self):
        rental = make_rental(self.vehicle, self.customer, days=2)

        response = self.client.get(
            reverse("bookings:vehicle_availability"),
            {"start": _local(START), "end": _local(START + timedelta(days=1)), "exclude": rental.pk},
        )

        self.assertEqual(response.json()["unavailable"], [])

    def test_invalid_span_is_400(self):
        response = self.client.get(
            reverse("bookings:vehicle_availability"), {"start": _local(START), "end": _local(START)}
        )

        self.assertEqual(response.status_code, 400)

    def test_impossible_date_is_400(self):
        response = self.client.get(
            reverse("bookings:vehicle_availability"), {"start": "2024-02-30T10:00", "end": "2024-03-01T10:00"}
        )

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["ok"])

    def test_non_numeric_exclude_is_400(self):
        response = self.client.get(
            reverse("bookings:vehicle_availability"),
            {"start": _local(START), "end": _local(START + timedelta(days=1)), "exclude": "abc"},
        )

        self.assertEqual(response.status_code, 400)


class RentalStatusViewTests(LoggedInTestCase):
    def test_reactivating_cancelled_rental_over_a_booking_is_refused(self):
        make_rental(self.vehicle, self.customer, status="active")
        cancelled = make_rental(self.vehicle, self.customer, status="cancelled")

        response = self.client.post(reverse("bookings:rental_status", args=[cancelled.pk]), {"status": "active"})

        self.assertRedirects(response, reverse("bookings:rental_list"), fetch_redirect_response=False)
        cancelled.refresh_from_db()
        self.assertEqual(cancelled.status, "cancelled")
        self.assertEqual(Rental.objects.filter(status="active").count(), 1)

    def test_reactivating_cancelled_rental_on_free_period(self):
        cancelled = make_rental(self.vehicle, self.customer, status="cancelled")
        make_rental(self.vehicle, self.customer, start=START + timedelta(days=5), status="active")

        self.client.post(reverse("bookings:rental_status", args=[cancelled.pk]), {"status": "pending"})

        cancelled.refresh_from_db()
        self.assertEqual(cancelled.status, "pending")

    def test_cancelling_never_checks_availability(self):
        active = make_rental(self.vehicle, self.customer, status="active")

        self.client.post(reverse("bookings:rental_status", args=[active.pk]), {"status": "cancelled"})

        active.refresh_from_db()
        self.assertEqual(active.status, "cancelled")


class ContractViewTests(LoggedInTestCase):
    def setUp(self):
        super().setUp()
        self.rental = make_rental(self.vehicle, self.customer)

    def test_contract_page_renders(self):
        response = self.client.get(reverse("bookings:rental_contract", args=[self.rental.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, self.rental.contract_number)
        self.assertContains(response, "1BX0001")

    def test_sign_endpoint_stores_signature(self):
        response = self.client.post(
            reverse("bookings:rental_sign", args=[self.rental.pk]),
            {"role": "customer", "signature": png_data_url()},
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["ok"])
        self.assertIsNotNone(response.json()["digital_consent_at"])

    def test_sign_endpoint_rejects_blank_canvas(self):
        response = self.client.post(
            reverse("bookings:rental_sign", args=[self.rental.pk]),
            {"role": "customer", "signature": png_data_url(drawn=False)},
        )

        self.assertEqual(response.status_code, 400)
        self.rental.refresh_from_db()
        self.assertEqual(self.rental.customer_signature, "")

    def test_built_in_pdf(self):
        response = self.client.get(reverse("bookings:rental_contract_pdf", args=[self.rental.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "application/pdf")
        self.assertTrue(response.content.startswith(b"%PDF"))


class RentalRequestFlowTests(TestCase):
    def _submit(self, **overrides):
        data = {
            "first_name": "Petra",
            "last_name": "Svobodová",
            "email": "petra@example.com",
            "phone": "+420 777 123 456",
            "id_card_number": "987654321",
            "drivers_license_number": "EF654321",
            "consent": "on",
        }
        data.update(overrides)
        return self.client.post(reverse("bookings:request_create"), data)

    def test_public_request_then_approval_creates_customer(self):
        response = self._submit()
        self.assertRedirects(response, reverse("bookings:request_thanks"))
        rental_request = RentalRequest.objects.get()
        self.assertEqual(rental_request.status, "pending")
        self.assertIsNotNone(rental_request.digital_consent_at)

        user = get_user_model().objects.create_user(username="staff", password="pass")
        self.client.force_login(user)
        response = self.client.post(reverse("bookings:request_approve", args=[rental_request.pk]))

        self.assertRedirects(response, reverse("bookings:dashboard"))
        rental_request.refresh_from_db()
        self.assertEqual(rental_request.status, "approved")
        self.assertEqual(rental_request.customer.email, "petra@example.com")
        self.assertEqual(Customer.objects.count(), 1)

    def test_consent_is_required(self):
        response = self._submit(consent="")

        self.assertEqual(response.status_code, 200)
        self.assertIn("consent", response.context["form"].errors)
        self.assertFalse(RentalRequest.objects.exists())

    def test_request_cannot_be_approved_twice(self):
        self._submit()
        rental_request = RentalRequest.objects.get()
        user = get_user_model().objects.create_user(username="staff", password="pass")
        self.client.force_login(user)
        self.client.post(reverse("bookings:request_reject", args=[rental_request.pk]))

        response = self.client.post(reverse("bookings:request_approve", args=[rental_request.pk]))

        self.assertRedirects(response, reverse("bookings:request_detail", args=[rental_request.pk]))
        self.assertFalse(Customer.objects.exists())
