"""
URL configuration for the autospace backend.

Every app mounts its routes under ``api/v1/``; the Django admin lives at
``admin/``.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Autospace Admin Panel"
admin.site.site_title = "Autospace Admin Portal"
admin.site.index_title = "Garages, bookings and valets"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.parties.urls')),
    path('api/v1/', include('backend.garages.urls')),
    path('api/v1/', include('backend.bookings.urls')),
]
