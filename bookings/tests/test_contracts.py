from datetime import timedelta

from django.test import TestCase, override_settings

from bookings.models import ContractTemplate
from bookings.services.contract_renderer import (
    build_placeholder_values,
    placeholder_token_map,
    render_default_contract,
    render_html_template,
)
from bookings.services.stats import rentals_by_start_date, upcoming_returns

from .helpers import START, make_customer, make_rental, make_vehicle


@override_settings(COMPANY_NAME="Test Rent s.r.o.")
class ContractRendererTests(TestCase):
    def setUp(self):
        self.rental = make_rental(make_vehicle(), make_customer())

    def test_placeholders_cover_rental_data(self):
        values = build_placeholder_values(self.rental)

        self.assertEqual(values["customer.full_name"], "Jan Novák")
        self.assertEqual(values["vehicle.license_plate"], "1BX0001")
        self.assertEqual(values["rental.total_price"], "1290")
        self.assertEqual(values["company.name"], "Test Rent s.r.o.")
        self.assertEqual(values["rental.digital_consent_at"], "")

    def test_token_map_accepts_flat_spelling(self):
        mapping = placeholder_token_map(self.rental)

        self.assertEqual(mapping["{{ customer_full_name }}"], "Jan Novák")
        self.assertEqual(mapping["{{customer.full_name}}"], "Jan Novák")

    def test_html_template_renders_and_declares_utf8(self):
        template = ContractTemplate.objects.create(
            name="Krátká",
            format="html",
            body_html="<html><head><meta charset='windows-1250'></head><body>{{ customer.full_name }}</body></html>",
        )

        html = render_html_template(template, self.rental)

        self.assertIn("Jan Novák", html)
        self.assertIn("utf-8", html)
        self.assertNotIn("windows-1250", html)

    def test_empty_html_template_is_an_error(self):
        template = ContractTemplate.objects.create(name="Prázdná", format="html", body_html="")

        with self.assertRaises(ValueError):
            render_html_template(template, self.rental)

    def test_default_contract_mentions_parties(self):
        html = render_default_contract(self.rental)

        self.assertIn("Test Rent s.r.o.", html)
        self.assertIn(self.rental.contract_number, html)


class StatsTests(TestCase):
    def test_upcoming_returns_only_active_within_window(self):
        vehicle, customer = make_vehicle(), make_customer()
        soon = make_rental(vehicle, customer, start=START, days=1, status="active")
        make_rental(vehicle, customer, start=START + timedelta(days=20), days=1, status="active")

        returns = upcoming_returns(days=7, now=START)

        self.assertEqual(returns, [soon])

    def test_calendar_groups_by_start_day_without_cancelled(self):
        vehicle, customer = make_vehicle(), make_customer()
        kept = make_rental(vehicle, customer, status="pending")
        make_rental(vehicle, customer, status="cancelled")

        grouped = rentals_by_start_date()

        self.assertEqual([rental for day in grouped.values() for rental in day], [kept])
