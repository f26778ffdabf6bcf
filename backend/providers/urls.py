from django.urls import path
from .views import ProviderProfilesView, ProviderPendingOffersView

urlpatterns = [
    path("me/", ProviderProfilesView.as_view(), name="provider-profiles"),
    path("offers/", ProviderPendingOffersView.as_view(), name="provider-offers"),
]
