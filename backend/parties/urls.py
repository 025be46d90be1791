from django.urls import path
from .views import (
    admin_list_create, admin_count, admin_me, admin_detail,
    manager_list_create, manager_count, manager_me, manager_detail,
    valet_list_create, valet_count, valet_me, company_valets, valet_detail,
    customer_list_create, customer_count, customer_me, customer_detail,
    company_list_create, my_company, company_detail,
)

urlpatterns = [
    # Admin endpoints
    path('admins/', admin_list_create, name='admin-list-create'),
    path('admins/count/', admin_count, name='admin-count'),
    path('admins/me/', admin_me, name='admin-me'),
    path('admins/<str:pk>/', admin_detail, name='admin-detail'),

    # Manager endpoints
    path('managers/', manager_list_create, name='manager-list-create'),
    path('managers/count/', manager_count, name='manager-count'),
    path('managers/me/', manager_me, name='manager-me'),
    path('managers/<str:pk>/', manager_detail, name='manager-detail'),

    # Valet endpoints
    path('valets/', valet_list_create, name='valet-list-create'),
    path('valets/count/', valet_count, name='valet-count'),
    path('valets/me/', valet_me, name='valet-me'),
    path('valets/company/', company_valets, name='company-valets'),
    path('valets/<str:pk>/', valet_detail, name='valet-detail'),

    # Customer endpoints
    path('customers/', customer_list_create, name='customer-list-create'),
    path('customers/count/', customer_count, name='customer-count'),
    path('customers/me/', customer_me, name='customer-me'),
    path('customers/<str:pk>/', customer_detail, name='customer-detail'),

    # Company endpoints
    path('companies/', company_list_create, name='company-list-create'),
    path('companies/my/', my_company, name='my-company'),
    path('companies/<int:pk>/', company_detail, name='company-detail'),
]
