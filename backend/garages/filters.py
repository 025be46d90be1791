import django_filters
from django.db.models import Q
from .models import Garage, Review


class GarageFilter(django_filters.FilterSet):
    """Filter for the public garage list"""

    # Matches the display name, description or street address
    search = django_filters.CharFilter(method='filter_search', label='Search')

    company = django_filters.NumberFilter(field_name='company_id', lookup_expr='exact')
    verified = django_filters.CharFilter(method='filter_verified', label='Verified')

    class Meta:
        model = Garage
        fields = ['search', 'company', 'verified']

    def filter_search(self, queryset, name, value):
        """Every word has to appear in the name, description or address"""
        if not value:
            return queryset

        words = [w for w in value.split() if w.strip()]
        if not words:
            return queryset

        for word in words:
            queryset = queryset.filter(
                Q(display_name__icontains=word) |
                Q(description__icontains=word) |
                Q(address__address__icontains=word)
            )
        return queryset

    def filter_verified(self, queryset, name, value):
        """Filter by verification state (handles string 'true'/'false')"""
        if value is None or value == '':
            return queryset
        if isinstance(value, str):
            is_verified = value.lower() == 'true'
        else:
            is_verified = bool(value)
        if is_verified:
            return queryset.filter(verification__verified=True)
        # Garages never reviewed by an admin have no verification row
        return queryset.filter(Q(verification__isnull=True) | Q(verification__verified=False))


class ReviewFilter(django_filters.FilterSet):
    garage = django_filters.NumberFilter(field_name='garage_id', lookup_expr='exact')
    customer = django_filters.CharFilter(field_name='customer_id', lookup_expr='exact')
    min_rating = django_filters.NumberFilter(field_name='rating', lookup_expr='gte')

    class Meta:
        model = Review
        fields = ['garage', 'customer', 'min_rating']
