"""
Slot availability and garage search.

A slot is free for a window when no booking still holding it overlaps the
window. Windows are half-open, so a booking ending at 10:00 does not block
one starting at 10:00.
"""
from django.db.models import Count, Exists, Min, OuterRef, Q
from backend.bookings.models import Booking
from .models import Garage, Slot


def free_slots(queryset, start_time, end_time):
    """Restrict a Slot queryset to the slots free for the whole window"""
    busy = Booking.objects.holding_slot().overlapping(start_time, end_time).filter(slot=OuterRef('pk'))
    return queryset.filter(~Exists(busy))


def is_slot_free(slot_id, start_time, end_time):
    return not (
        Booking.objects.holding_slot()
        .overlapping(start_time, end_time)
        .filter(slot_id=slot_id)
        .exists()
    )


def filter_slots(queryset, params):
    """Apply the optional type, price range and minimum size filters"""
    if params.get('type'):
        queryset = queryset.filter(type=params['type'])
    if params.get('price_per_hour_min') is not None:
        queryset = queryset.filter(price_per_hour__gte=params['price_per_hour_min'])
    if params.get('price_per_hour_max') is not None:
        queryset = queryset.filter(price_per_hour__lte=params['price_per_hour_max'])
    # Slots without a recorded size are assumed to fit
    for dimension in ('length', 'width', 'height'):
        minimum = params.get(dimension)
        if minimum:
            queryset = queryset.filter(Q(**{f'{dimension}__isnull': True}) | Q(**{f'{dimension}__gte': minimum}))
    return queryset


def search_garages(params):
    """
    Verified garages inside the ne/sw bounds having at least one matching
    free slot for the window.

    Returns (total, garages) where every garage dict carries the per-type
    free slot counts and the lowest matching price.
    """
    ne, sw = params['ne'], params['sw']
    slots = Slot.objects.filter(
        garage__verification__verified=True,
        garage__address__lat__lte=ne['lat'],
        garage__address__lat__gte=sw['lat'],
        garage__address__lng__lte=ne['lng'],
        garage__address__lng__gte=sw['lng'],
    )
    slots = filter_slots(slots, params)
    slots = free_slots(slots, params['start_time'], params['end_time'])

    garage_ids = slots.order_by('garage_id').values_list('garage_id', flat=True).distinct()
    total = garage_ids.count()
    skip, take = params.get('skip', 0), params.get('take', 20)
    page_ids = list(garage_ids[skip:skip + take])

    per_type = {}
    rows = (
        slots.filter(garage_id__in=page_ids)
        .order_by()
        .values('garage_id', 'type')
        .annotate(count=Count('id'), price_per_hour=Min('price_per_hour'))
        .order_by('garage_id', 'type')
    )
    for row in rows:
        per_type.setdefault(row['garage_id'], []).append({
            'type': row['type'],
            'count': row['count'],
            'price_per_hour': row['price_per_hour'],
        })

    garages = Garage.objects.filter(pk__in=page_ids).select_related('address', 'company').order_by('pk')
    results = []
    for garage in garages:
        available = per_type.get(garage.pk, [])
        results.append({
            'id': garage.pk,
            'display_name': garage.display_name,
            'description': garage.description,
            'images': garage.images,
            'company': garage.company_id,
            'company_name': garage.company.display_name,
            'address': {
                'address': garage.address.address,
                'lat': garage.address.lat,
                'lng': garage.address.lng,
            },
            'available_slots': available,
            'lowest_price': min((entry['price_per_hour'] for entry in available), default=None),
        })
    return total, results
