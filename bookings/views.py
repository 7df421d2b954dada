import logging
import re

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.db.models import Q
from django.db.models.deletion import ProtectedError
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse, reverse_lazy
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.utils.decorators import method_decorator
from django.views.decorators.http import require_GET, require_POST
from django.views.generic import CreateView, ListView, UpdateView

from .forms import (
    ContractTemplateForm,
    CustomerForm,
    RentalForm,
    RentalRequestForm,
    RentalStatusForm,
    SignatureForm,
    VehicleForm,
)
from .models import ContractTemplate, Customer, Rental, RentalRequest, Vehicle
from .services.availability import BookingSpan
from .services.booking import load_booking_context
from .services.contract_renderer import (
    company_details,
    placeholder_guide,
    render_docx,
    render_html_template,
    render_pdf,
)
from .services.errors import BookingError
from .services.pricing import DURATION_CHOICES, priced_categories
from .services.requests import approve_request, reject_request
from .services.signatures import SignatureError, apply_signature
from .services.stats import dashboard_summary, rentals_by_start_date, upcoming_returns

logger = logging.getLogger(__name__)


def _parse_instant(value):
    """Parse an ISO-8601 / datetime-local value into an aware datetime."""
    if not value:
        return None
    try:
        parsed = parse_datetime(str(value).strip())
    except ValueError as exc:
        # Well-formed but impossible, e.g. 2024-02-30T10:00.
        raise BookingError(f"Invalid date/time: {value!r}") from exc
    if parsed is None:
        raise BookingError(f"Invalid date/time: {value!r}")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def _parse_span(params) -> BookingSpan:
    start = _parse_instant(params.get("start"))
    end = _parse_instant(params.get("end"))
    return BookingSpan(start, end)


def _serialize_vehicle_pricing(vehicle: Vehicle):
    """Rate info for the rental form helper."""
    rates = vehicle.rate_table.as_dict()
    return {
        "id": vehicle.id,
        "label": str(vehicle),
        "license_plate": vehicle.license_plate,
        "rates": {category: str(rate) if rate is not None else None for category, rate in rates.items()},
        "categories": priced_categories(vehicle.rate_table),
    }


@login_required
def dashboard(request):
    context = {
        **dashboard_summary(),
        "upcoming_returns": upcoming_returns(),
        "pending_requests_list": RentalRequest.objects.filter(status="pending")[:10],
    }
    return render(request, "bookings/dashboard.html", context)


@login_required
def settings_view(request):
    return render(request, "bookings/settings.html", {"company": company_details()})


@method_decorator(login_required, name="dispatch")
class VehicleListView(ListView):
    model = Vehicle
    template_name = "bookings/vehicle_list.html"

    def get_queryset(self):
        queryset = super().get_queryset()
        self.search_query = (self.request.GET.get("q") or "").strip()
        if self.search_query:
            normalized = re.sub(r"\s+", "", self.search_query)
            queryset = queryset.filter(
                Q(license_plate__icontains=normalized)
                | Q(brand__icontains=self.search_query)
                | Q(model__icontains=self.search_query)
                | Q(vin__icontains=normalized)
            )
        return queryset.order_by("brand", "license_plate")

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["search_query"] = getattr(self, "search_query", "")
        return context


@method_decorator(login_required, name="dispatch")
class VehicleCreateView(CreateView):
    model = Vehicle
    form_class = VehicleForm
    template_name = "bookings/vehicle_form.html"
    success_url = reverse_lazy("bookings:vehicle_list")


@method_decorator(login_required, name="dispatch")
class VehicleUpdateView(UpdateView):
    model = Vehicle
    form_class = VehicleForm
    template_name = "bookings/vehicle_form.html"
    success_url = reverse_lazy("bookings:vehicle_list")


@login_required
@require_POST
def vehicle_delete(request, pk: int):
    vehicle = get_object_or_404(Vehicle, pk=pk)
    try:
        vehicle.delete()
        messages.success(request, f"Deleted vehicle {vehicle.license_plate}.")
    except ProtectedError:
        messages.error(request, "Cannot delete this vehicle because it is linked to existing rentals.")
    return redirect("bookings:vehicle_list")


@method_decorator(login_required, name="dispatch")
class CustomerListView(ListView):
    model = Customer
    template_name = "bookings/customer_list.html"
    paginate_by = 25

    def get_queryset(self):
        queryset = super().get_queryset()
        self.search_query = (self.request.GET.get("q") or "").strip()
        if self.search_query:
            for term in re.split(r"\s+", self.search_query):
                queryset = queryset.filter(
                    Q(first_name__icontains=term)
                    | Q(last_name__icontains=term)
                    | Q(email__icontains=term)
                    | Q(phone__icontains=term)
                )
        return queryset.order_by("last_name", "first_name", "id")

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["search_query"] = getattr(self, "search_query", "")
        return context


@method_decorator(login_required, name="dispatch")
class CustomerCreateView(CreateView):
    model = Customer
    form_class = CustomerForm
    template_name = "bookings/customer_form.html"
    success_url = reverse_lazy("bookings:customer_list")


@method_decorator(login_required, name="dispatch")
class CustomerUpdateView(UpdateView):
    model = Customer
    form_class = CustomerForm
    template_name = "bookings/customer_form.html"
    success_url = reverse_lazy("bookings:customer_list")


@login_required
@require_POST
def customer_delete(request, pk: int):
    customer = get_object_or_404(Customer, pk=pk)
    try:
        customer.delete()
        messages.success(request, f"Deleted customer {customer.full_name}.")
    except ProtectedError:
        messages.error(request, "Cannot delete this customer because they are linked to existing rentals.")
    return redirect("bookings:customer_list")


@method_decorator(login_required, name="dispatch")
class RentalListView(ListView):
    model = Rental
    template_name = "bookings/rental_list.html"

    def get_queryset(self):
        queryset = super().get_queryset().select_related("vehicle", "customer")
        self.search_query = (self.request.GET.get("q") or "").strip()
        self.status_filter = (self.request.GET.get("status") or "").strip()

        if self.status_filter:
            queryset = queryset.filter(status=self.status_filter)

        if self.search_query:
            for term in re.split(r"\s+", self.search_query):
                queryset = queryset.filter(
                    Q(contract_number__icontains=term)
                    | Q(customer__first_name__icontains=term)
                    | Q(customer__last_name__icontains=term)
                    | Q(customer__email__icontains=term)
                    | Q(vehicle__license_plate__icontains=term)
                    | Q(vehicle__brand__icontains=term)
                )

        return queryset.order_by("-start_at", "-id")

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["contract_templates"] = ContractTemplate.objects.all()
        context["search_query"] = getattr(self, "search_query", "")
        context["status_filter"] = getattr(self, "status_filter", "")
        context["rental_status_choices"] = Rental.STATUS_CHOICES
        return context


class RentalFormMixin:
    model = Rental
    form_class = RentalForm
    template_name = "bookings/rental_form.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["vehicle_pricing"] = [
            _serialize_vehicle_pricing(vehicle) for vehicle in Vehicle.objects.filter(is_active=True)
        ]
        context["duration_choices"] = DURATION_CHOICES
        return context

    def get_success_url(self):
        return reverse("bookings:rental_contract", args=[self.object.pk])


@method_decorator(login_required, name="dispatch")
class RentalCreateView(RentalFormMixin, CreateView):
    def form_valid(self, form):
        form.instance.created_by = self.request.user
        response = super().form_valid(form)
        messages.success(self.request, f"Rental {self.object.contract_number} created.")
        return response


@method_decorator(login_required, name="dispatch")
class RentalUpdateView(RentalFormMixin, UpdateView):
    pass


@login_required
@require_POST
def rental_status(request, pk: int):
    rental = get_object_or_404(Rental, pk=pk)
    form = RentalStatusForm(request.POST, instance=rental)
    if form.is_valid():
        form.save()
        messages.success(request, f"Rental {rental.contract_number} is now {rental.get_status_display().lower()}.")
    else:
        messages.error(request, " ".join(error for errors in form.errors.values() for error in errors))
    return redirect("bookings:rental_list")


@login_required
@require_GET
def rental_quote(request):
    """
    Interactive price recalculation for the rental form.

    GET vehicle, category, start, end -> {"ok": true, "amount": ...} or {"ok": false, "error": ...}
    """
    vehicle_id = request.GET.get("vehicle") or ""
    if not vehicle_id.isdigit():
        return JsonResponse({"ok": False, "error": "Vehicle is required."}, status=400)
    vehicle = get_object_or_404(Vehicle, pk=int(vehicle_id))
    category = request.GET.get("category") or ""
    try:
        start = _parse_instant(request.GET.get("start"))
        end = _parse_instant(request.GET.get("end"))
        context = load_booking_context(vehicles=[vehicle])
        if start is None and end is None:
            quote = context.quote(vehicle, category)
        else:
            quote = context.quote(vehicle, category, BookingSpan(start, end))
    except (BookingError, ValueError) as exc:
        return JsonResponse({"ok": False, "error": str(exc)}, status=400)
    return JsonResponse({"ok": True, **quote.as_dict()})


@login_required
@require_GET
def vehicle_availability(request):
    """GET start, end -> vehicles free for the span and conflicts for the rest."""
    try:
        span = _parse_span(request.GET)
    except (BookingError, ValueError) as exc:
        return JsonResponse({"ok": False, "error": str(exc)}, status=400)

    exclude = None
    exclude_id = request.GET.get("exclude") or ""
    if exclude_id:
        if not exclude_id.isdigit():
            return JsonResponse({"ok": False, "error": "Rental to exclude must be an id."}, status=400)
        exclude = Rental.objects.filter(pk=int(exclude_id)).first()
    context = load_booking_context(exclude_rental=exclude)

    available, unavailable = [], []
    for vehicle in context.vehicles:
        result = context.check(vehicle, span)
        if result.available:
            available.append(_serialize_vehicle_pricing(vehicle))
        else:
            unavailable.append(
                {
                    "id": vehicle.id,
                    "label": str(vehicle),
                    "conflicts": [
                        {
                            "rental": booking.reference,
                            "label": booking.label,
                            "start": booking.span.start.isoformat(),
                            "end": booking.span.end.isoformat(),
                        }
                        for booking in result.conflicts
                    ],
                }
            )
    return JsonResponse({"ok": True, "available": available, "unavailable": unavailable})


@login_required
def calendar_view(request):
    return render(request, "bookings/calendar.html", {"days": rentals_by_start_date()})


@login_required
def rental_contract(request, pk: int):
    rental = get_object_or_404(Rental.objects.select_related("vehicle", "customer"), pk=pk)
    context = {
        "rental": rental,
        "vehicle": rental.vehicle,
        "customer": rental.customer,
        "company": company_details(),
        "contract_templates": ContractTemplate.objects.all(),
    }
    return render(request, "bookings/contract.html", context)


@login_required
@require_POST
def rental_sign(request, pk: int):
    rental = get_object_or_404(Rental, pk=pk)
    form = SignatureForm(request.POST)
    if not form.is_valid():
        return JsonResponse({"ok": False, "error": "Role and signature are required."}, status=400)
    try:
        apply_signature(rental, form.cleaned_data["role"], form.cleaned_data["signature"])
    except SignatureError as exc:
        logger.warning("Signature rejected", extra={"rental_id": rental.id, "reason": str(exc)})
        return JsonResponse({"ok": False, "error": str(exc)}, status=400)
    return JsonResponse(
        {
            "ok": True,
            "role": form.cleaned_data["role"],
            "digital_consent_at": rental.digital_consent_at.isoformat() if rental.digital_consent_at else None,
        }
    )


@login_required
def rental_contract_pdf(request, pk: int):
    rental = get_object_or_404(Rental.objects.select_related("vehicle", "customer"), pk=pk)
    try:
        file_io = render_pdf(None, rental)
    except Exception as exc:  # noqa: BLE001 - report rendering problems to the operator
        logger.exception("Failed to render built-in PDF contract", extra={"rental_id": rental.id})
        return HttpResponse(f"Could not render PDF: {exc}", status=500)
    response = HttpResponse(file_io.getvalue(), content_type="application/pdf")
    response["Content-Disposition"] = f'attachment; filename="contract_{rental.contract_number or rental.id}.pdf"'
    return response


@login_required
def generate_contract(request, rental_id, template_id):
    rental = get_object_or_404(Rental, pk=rental_id)
    ct = get_object_or_404(ContractTemplate, pk=template_id)

    if ct.format == "html":
        try:
            html = render_html_template(ct, rental)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Failed to render HTML contract", extra={"template_id": ct.id, "rental_id": rental.id})
            return HttpResponse(f"Could not render HTML: {exc}", status=500)
        return HttpResponse(html, content_type="text/html; charset=utf-8")

    elif ct.format == "docx":
        try:
            file_io = render_docx(ct, rental)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Failed to render DOCX contract", extra={"template_id": ct.id, "rental_id": rental.id})
            return HttpResponse(f"Could not render DOCX: {exc}", status=500)
        response = HttpResponse(
            file_io.getvalue(),
            content_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        )
        response["Content-Disposition"] = f'attachment; filename="contract_{rental.id}.docx"'
        return response

    elif ct.format == "pdf":
        try:
            file_io = render_pdf(ct, rental)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Failed to generate PDF contract", extra={"template_id": ct.id, "rental_id": rental.id})
            return HttpResponse(f"Could not render PDF: {exc}", status=500)
        response = HttpResponse(file_io.getvalue(), content_type="application/pdf")
        response["Content-Disposition"] = f'attachment; filename="contract_{rental.id}.pdf"'
        return response

    return HttpResponse("Unknown template format", status=400)


@method_decorator(login_required, name="dispatch")
class ContractTemplateListView(ListView):
    model = ContractTemplate
    template_name = "bookings/contract_template_list.html"


@method_decorator(login_required, name="dispatch")
class ContractTemplateCreateView(CreateView):
    model = ContractTemplate
    form_class = ContractTemplateForm
    template_name = "bookings/contract_template_form.html"
    success_url = reverse_lazy("bookings:contract_template_list")

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["placeholder_guide"] = placeholder_guide()
        return context


@method_decorator(login_required, name="dispatch")
class ContractTemplateUpdateView(UpdateView):
    model = ContractTemplate
    form_class = ContractTemplateForm
    template_name = "bookings/contract_template_form.html"
    success_url = reverse_lazy("bookings:contract_template_list")

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["placeholder_guide"] = placeholder_guide()
        return context


def request_create(request):
    """Public intake form; no login required."""
    form = RentalRequestForm(request.POST or None, request.FILES or None)
    if request.method == "POST" and form.is_valid():
        rental_request = form.save()
        logger.info("Rental request submitted", extra={"request_id": rental_request.pk})
        return redirect("bookings:request_thanks")
    return render(request, "bookings/request_form.html", {"form": form})


def request_thanks(request):
    return render(request, "bookings/request_thanks.html")


@login_required
def request_detail(request, pk: int):
    rental_request = get_object_or_404(RentalRequest, pk=pk)
    return render(request, "bookings/request_detail.html", {"rental_request": rental_request})


@login_required
@require_POST
def request_approve(request, pk: int):
    rental_request = get_object_or_404(RentalRequest, pk=pk)
    try:
        customer = approve_request(rental_request)
    except ValueError as exc:
        messages.error(request, str(exc))
        return redirect("bookings:request_detail", pk=pk)
    messages.success(request, f"Request approved, customer {customer.full_name} created.")
    return redirect("bookings:dashboard")


@login_required
@require_POST
def request_reject(request, pk: int):
    rental_request = get_object_or_404(RentalRequest, pk=pk)
    try:
        reject_request(rental_request)
    except ValueError as exc:
        messages.error(request, str(exc))
        return redirect("bookings:request_detail", pk=pk)
    messages.info(request, "Request rejected.")
    return redirect("bookings:dashboard")
