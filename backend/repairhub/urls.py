from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Authentication endpoints (at /api/auth/)
    path('api/auth/', include('accounts.urls')),  # token, token/refresh

    # Provider APIs (own profiles, live job offers)
    path('api/providers/', include('providers.urls')),

    # Repair dispatch and offer lifecycle (at /api/repairs/)
    path('api/repairs/', include('repairs.urls')),
]
