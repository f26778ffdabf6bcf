from django.urls import path
from . import views

app_name = 'repairs'

urlpatterns = [
    # Dispatch
    path('dispatch/', views.dispatch_repair, name='dispatch-repair'),

    # Provider offer actions
    path('offers/accept/', views.accept_job_offer, name='accept-offer'),
    path('offers/decline/', views.decline_job_offer, name='decline-offer'),
    path('offers/expire-old/', views.expire_old_offers, name='expire-old-offers'),

    # Repair request lifecycle
    path('<int:request_id>/', views.repair_request_detail, name='repair-detail'),
    path('<int:request_id>/cancel/', views.cancel_repair_request, name='cancel-repair'),
    path('<int:request_id>/complete/', views.complete_repair_request, name='complete-repair'),
]
