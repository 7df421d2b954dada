from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path
from django.views.generic import RedirectView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("accounts/", include("django.contrib.auth.urls")),
    path("bookings/", include("bookings.urls")),
    path("", RedirectView.as_view(pattern_name="bookings:dashboard", permanent=False)),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
