from datetime import timedelta

from django import forms
from django.db.models import Q
from django.utils import timezone

from .models import ContractTemplate, Customer, Rental, RentalRequest, Vehicle
from .services.availability import BookingSpan, InvalidSpanError
from .services.booking import load_booking_context
from .services.pricing import DAY, default_end
from .services.signatures import SIGNATURE_ROLES

DATETIME_INPUT_FORMATS = ["%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M", "%d.%m.%Y %H:%M"]


class StyledModelForm(forms.ModelForm):
    """Apply basic Bootstrap classes to all widgets."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for field in self.fields.values():
            widget = field.widget
            css = widget.attrs.get("class", "")
            if isinstance(widget, forms.CheckboxInput):
                widget.attrs["class"] = f"form-check-input {css}".strip()
            elif isinstance(widget, forms.Select):
                widget.attrs["class"] = f"form-select {css}".strip()
            else:
                widget.attrs["class"] = f"form-control {css}".strip()
            if isinstance(widget, forms.Textarea):
                widget.attrs.setdefault("rows", 3)


class DateTimeLocalInput(forms.DateTimeInput):
    input_type = "datetime-local"

    def __init__(self, attrs=None):
        super().__init__(attrs=attrs, format="%Y-%m-%dT%H:%M")


class VehicleForm(StyledModelForm):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for name in ("stk_date", "vignette_until"):
            widget = self.fields[name].widget
            widget.input_type = "date"
            widget.format = "%Y-%m-%d"
            widget.attrs.setdefault("placeholder", "YYYY-MM-DD")

    class Meta:
        model = Vehicle
        fields = [
            "brand",
            "model",
            "license_plate",
            "vin",
            "year",
            "rate_four_hour",
            "rate_twelve_hour",
            "rate_day",
            "rate_month",
            "stk_date",
            "insurance_info",
            "vignette_until",
            "is_active",
        ]
        labels = {
            "license_plate": "SPZ",
            "vin": "VIN",
            "rate_four_hour": "4h rate",
            "rate_twelve_hour": "12h rate",
            "rate_day": "Daily rate",
            "rate_month": "Monthly rate",
            "stk_date": "STK valid until",
            "vignette_until": "Vignette valid until",
        }

    def clean_license_plate(self):
        return (self.cleaned_data.get("license_plate") or "").replace(" ", "").upper()

    def clean(self):
        cleaned_data = super().clean()
        rates = [cleaned_data.get(name) for name in ("rate_four_hour", "rate_twelve_hour", "rate_day", "rate_month")]
        if not any(rate for rate in rates):
            raise forms.ValidationError("Configure at least one rate, otherwise the vehicle cannot be booked.")
        return cleaned_data


class CustomerForm(StyledModelForm):
    class Meta:
        model = Customer
        fields = [
            "first_name",
            "last_name",
            "email",
            "phone",
            "id_card_number",
            "drivers_license_number",
            "drivers_license_image",
            "notes",
        ]
        labels = {
            "id_card_number": "ID card number",
            "drivers_license_number": "Driver's licence number",
            "drivers_license_image": "Driver's licence (front side)",
        }


class RentalForm(StyledModelForm):
    """
    Booking wizard form: vehicle, customer, duration and period.

    The price is never taken from the client; clean() recomputes it from the
    vehicle's rate table whenever the booking is created or its terms change.
    """

    end_at = forms.DateTimeField(
        required=False,
        input_formats=DATETIME_INPUT_FORMATS,
        widget=DateTimeLocalInput(),
        help_text="Pro 4h, 12h a měsíční sazbu lze nechat prázdné.",
    )

    class Meta:
        model = Rental
        fields = [
            "vehicle",
            "customer",
            "duration_category",
            "start_at",
            "end_at",
        ]
        labels = {
            "duration_category": "Duration",
            "start_at": "Start",
            "end_at": "End",
        }
        widgets = {
            "start_at": DateTimeLocalInput(),
        }

    def __init__(self, *args, context=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.booking_context = context
        self.quote = None
        self.fields["vehicle"].queryset = Vehicle.objects.filter(
            Q(is_active=True) | Q(pk=self.instance.vehicle_id)
        )
        self.fields["start_at"].input_formats = DATETIME_INPUT_FORMATS
        self.fields["end_at"].widget.attrs["class"] = "form-control"

        if not self.is_bound and not self.instance.pk:
            start = timezone.localtime().replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
            self.initial.setdefault("start_at", start)
            self.initial.setdefault("end_at", start + timedelta(days=1))
            self.initial.setdefault("duration_category", DAY)

    def clean(self):
        cleaned_data = super().clean()

        vehicle = cleaned_data.get("vehicle")
        category = cleaned_data.get("duration_category")
        start_at = cleaned_data.get("start_at")
        end_at = cleaned_data.get("end_at")

        if not start_at or not category:
            return cleaned_data
        if end_at is None:
            end_at = default_end(category, start_at)
            if end_at is None:
                self.add_error("end_at", "End is required for a day-based rental.")
                return cleaned_data
            cleaned_data["end_at"] = end_at

        try:
            span = BookingSpan(start_at, end_at)
        except InvalidSpanError:
            # Rental.clean() reports the field error.
            return cleaned_data

        if not vehicle:
            return cleaned_data

        recalc_needed = not self.instance.pk or any(
            field in self.changed_data for field in ("vehicle", "duration_category", "start_at", "end_at")
        )
        if not recalc_needed:
            return cleaned_data

        if self.booking_context is None:
            self.booking_context = load_booking_context(exclude_rental=self.instance)
        evaluation = self.booking_context.evaluate(vehicle, category, span)

        availability = evaluation.availability
        if availability is not None and not availability.available:
            labels = ", ".join(booking.label for booking in availability.conflicts)
            self.add_error("vehicle", f"Vehicle is already booked in this period ({labels}).")
        if evaluation.quote is None:
            self.add_error("duration_category", "This duration is not offered for the selected vehicle.")
        else:
            self.quote = evaluation.quote
        return cleaned_data

    def save(self, commit=True):
        instance = super().save(commit=False)
        if self.quote is not None:
            instance.unit_rate = self.quote.unit_rate
            instance.total_price = self.quote.amount
        if commit:
            instance.save()
        return instance


class RentalStatusForm(StyledModelForm):
    class Meta:
        model = Rental
        fields = ["status"]

    def clean(self):
        cleaned_data = super().clean()
        status = cleaned_data.get("status")
        # self.instance still carries the stored status until _post_clean().
        reoccupies = (
            self.instance.status not in Rental.OCCUPYING_STATUSES and status in Rental.OCCUPYING_STATUSES
        )
        if not reoccupies:
            return cleaned_data

        context = load_booking_context(exclude_rental=self.instance)
        result = context.check(self.instance.vehicle, self.instance.span)
        if not result.available:
            labels = ", ".join(booking.label for booking in result.conflicts)
            self.add_error("status", f"Vehicle is already booked in this period ({labels}).")
        return cleaned_data


class RentalRequestForm(StyledModelForm):
    consent = forms.BooleanField(
        required=True,
        label="Souhlasím se zpracováním osobních údajů.",
        error_messages={"required": "Musíte souhlasit se zpracováním osobních údajů."},
    )

    class Meta:
        model = RentalRequest
        fields = [
            "first_name",
            "last_name",
            "email",
            "phone",
            "id_card_number",
            "drivers_license_number",
            "drivers_license_image",
        ]
        labels = {
            "first_name": "Jméno",
            "last_name": "Příjmení",
            "email": "Email",
            "phone": "Telefon",
            "id_card_number": "Číslo OP",
            "drivers_license_number": "Číslo ŘP",
            "drivers_license_image": "Snímek řidičského průkazu (přední strana)",
        }

    def save(self, commit=True):
        instance = super().save(commit=False)
        instance.digital_consent_at = timezone.now()
        instance.status = "pending"
        if commit:
            instance.save()
        return instance


class SignatureForm(forms.Form):
    role = forms.ChoiceField(choices=[(role, role) for role in SIGNATURE_ROLES])
    signature = forms.CharField()


class ContractTemplateForm(StyledModelForm):
    class Meta:
        model = ContractTemplate
        fields = "__all__"
