from django.contrib import admin

from .models import ContractTemplate, Customer, Rental, RentalRequest, ServiceRecord, Vehicle


class ServiceRecordInline(admin.TabularInline):
    model = ServiceRecord
    extra = 0


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = (
        "license_plate",
        "brand",
        "model",
        "year",
        "rate_four_hour",
        "rate_twelve_hour",
        "rate_day",
        "rate_month",
        "stk_date",
        "is_active",
    )
    list_filter = ("is_active",)
    search_fields = ("license_plate", "brand", "model", "vin")
    inlines = [ServiceRecordInline]


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("last_name", "first_name", "phone", "email", "drivers_license_number")
    search_fields = ("first_name", "last_name", "email", "phone", "id_card_number", "drivers_license_number")


@admin.register(Rental)
class RentalAdmin(admin.ModelAdmin):
    list_display = (
        "contract_number",
        "vehicle",
        "customer",
        "start_at",
        "end_at",
        "duration_category",
        "total_price",
        "status",
    )
    list_filter = ("status", "duration_category", "start_at")
    search_fields = ("contract_number", "vehicle__license_plate", "vehicle__brand", "customer__last_name")
    readonly_fields = ("digital_consent_at", "created_at")


@admin.register(RentalRequest)
class RentalRequestAdmin(admin.ModelAdmin):
    list_display = ("last_name", "first_name", "email", "phone", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("first_name", "last_name", "email", "phone")


@admin.register(ContractTemplate)
class ContractTemplateAdmin(admin.ModelAdmin):
    list_display = ("name", "format")
