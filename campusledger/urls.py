"""
URL configuration for campusledger project.

The ledger exposes JSON endpoints only; batch/course administration and
authentication screens are provided by other services.
"""
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    # Django admin
    path('admin/', admin.site.urls),

    # Payments app - installment ledger, gateway notifications, proofs
    path('payments/', include(('payments.urls', 'payments'), namespace='payments')),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
