from django.contrib import admin
from .models import Company, Admin, Manager, Valet, Customer


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ['display_name', 'created_at']
    search_fields = ['display_name', 'description']
    ordering = ['display_name']


@admin.register(Admin)
class AdminAdmin(admin.ModelAdmin):
    list_display = ['user', 'created_at']
    search_fields = ['user__id', 'user__name', 'user__email']
    ordering = ['-created_at']


@admin.register(Manager)
class ManagerAdmin(admin.ModelAdmin):
    list_display = ['user', 'display_name', 'company', 'created_at']
    list_filter = ['company']
    search_fields = ['user__id', 'display_name']
    ordering = ['-created_at']


@admin.register(Valet)
class ValetAdmin(admin.ModelAdmin):
    list_display = ['user', 'display_name', 'licence_id', 'company', 'created_at']
    list_filter = ['company']
    search_fields = ['user__id', 'display_name', 'licence_id']
    ordering = ['-created_at']


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['user', 'display_name', 'created_at']
    search_fields = ['user__id', 'display_name']
    ordering = ['-created_at']
