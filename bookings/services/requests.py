import logging

from django.db import transaction

from ..models import Customer, RentalRequest

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "id_card_number",
    "drivers_license_number",
)


def approve_request(rental_request: RentalRequest) -> Customer:
    """Create a customer from a pending intake request and mark it approved."""
    if rental_request.status != "pending":
        raise ValueError(f"Request {rental_request.pk} is already {rental_request.status}.")

    with transaction.atomic():
        customer = Customer(**{name: getattr(rental_request, name) for name in CUSTOMER_FIELDS})
        if rental_request.drivers_license_image:
            customer.drivers_license_image = rental_request.drivers_license_image.name
        customer.save()
        rental_request.status = "approved"
        rental_request.customer = customer
        rental_request.save(update_fields=["status", "customer"])

    logger.info("Rental request approved", extra={"request_id": rental_request.pk, "customer_id": customer.pk})
    return customer


def reject_request(rental_request: RentalRequest) -> RentalRequest:
    if rental_request.status != "pending":
        raise ValueError(f"Request {rental_request.pk} is already {rental_request.status}.")
    rental_request.status = "rejected"
    rental_request.save(update_fields=["status"])
    logger.info("Rental request rejected", extra={"request_id": rental_request.pk})
    return rental_request
