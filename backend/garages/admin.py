from django.contrib import admin
from .models import Garage, Address, Slot, Verification, Review


class AddressInline(admin.StackedInline):
    model = Address
    can_delete = False


class SlotInline(admin.TabularInline):
    model = Slot
    extra = 0
    fields = ['display_name', 'type', 'price_per_hour', 'length', 'width', 'height']


@admin.register(Garage)
class GarageAdmin(admin.ModelAdmin):
    list_display = ['display_name', 'company', 'is_verified', 'created_at']
    list_filter = ['company', 'verification__verified']
    search_fields = ['display_name', 'description', 'address__address']
    ordering = ['-created_at']
    inlines = [AddressInline, SlotInline]


@admin.register(Slot)
class SlotAdmin(admin.ModelAdmin):
    list_display = ['display_name', 'garage', 'type', 'price_per_hour', 'created_at']
    list_filter = ['type', 'garage']
    search_fields = ['display_name', 'garage__display_name']


@admin.register(Verification)
class VerificationAdmin(admin.ModelAdmin):
    list_display = ['garage', 'verified', 'admin', 'updated_at']
    list_filter = ['verified']
    search_fields = ['garage__display_name']


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ['garage', 'customer', 'rating', 'created_at']
    list_filter = ['rating']
    search_fields = ['garage__display_name', 'comment']
    ordering = ['-created_at']
