from django.urls import path

from . import views

app_name = "bookings"

urlpatterns = [
    path("", views.dashboard, name="dashboard"),
    path("settings/", views.settings_view, name="settings"),
    path("vehicles/", views.VehicleListView.as_view(), name="vehicle_list"),
    path("vehicles/new/", views.VehicleCreateView.as_view(), name="vehicle_create"),
    path("vehicles/<int:pk>/edit/", views.VehicleUpdateView.as_view(), name="vehicle_update"),
    path("vehicles/<int:pk>/delete/", views.vehicle_delete, name="vehicle_delete"),
    path("vehicles/availability/", views.vehicle_availability, name="vehicle_availability"),
    path("customers/", views.CustomerListView.as_view(), name="customer_list"),
    path("customers/new/", views.CustomerCreateView.as_view(), name="customer_create"),
    path("customers/<int:pk>/edit/", views.CustomerUpdateView.as_view(), name="customer_update"),
    path("customers/<int:pk>/delete/", views.customer_delete, name="customer_delete"),
    path("rentals/", views.RentalListView.as_view(), name="rental_list"),
    path("rentals/new/", views.RentalCreateView.as_view(), name="rental_create"),
    path("rentals/quote/", views.rental_quote, name="rental_quote"),
    path("rentals/calendar/", views.calendar_view, name="calendar"),
    path("rentals/<int:pk>/edit/", views.RentalUpdateView.as_view(), name="rental_update"),
    path("rentals/<int:pk>/status/", views.rental_status, name="rental_status"),
    path("rentals/<int:pk>/contract/", views.rental_contract, name="rental_contract"),
    path("rentals/<int:pk>/contract.pdf", views.rental_contract_pdf, name="rental_contract_pdf"),
    path("rentals/<int:pk>/sign/", views.rental_sign, name="rental_sign"),
    path(
        "rentals/<int:rental_id>/contract/<int:template_id>/",
        views.generate_contract,
        name="generate_contract",
    ),
    path(
        "contract-templates/",
        views.ContractTemplateListView.as_view(),
        name="contract_template_list",
    ),
    path(
        "contract-templates/new/",
        views.ContractTemplateCreateView.as_view(),
        name="contract_template_create",
    ),
    path(
        "contract-templates/<int:pk>/edit/",
        views.ContractTemplateUpdateView.as_view(),
        name="contract_template_update",
    ),
    path("requests/<int:pk>/", views.request_detail, name="request_detail"),
    path("requests/<int:pk>/approve/", views.request_approve, name="request_approve"),
    path("requests/<int:pk>/reject/", views.request_reject, name="request_reject"),
    path("apply/", views.request_create, name="request_create"),
    path("apply/thanks/", views.request_thanks, name="request_thanks"),
]
