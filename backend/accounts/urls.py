from django.urls import path

from . import views

urlpatterns = [
    path('token/', views.obtain_token, name='token-obtain'),
    path('token/refresh/', views.refresh_token, name='token-refresh'),
]
