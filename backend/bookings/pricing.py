"""
Booking price calculation.

parking_charge = price_per_hour * ceil(hours)
valet charges  = VALET_CHARGE_PER_KM * geodesic distance between the garage
                 and the pickup / drop point, each rounded to 2 dp
"""
import math
from decimal import Decimal, ROUND_HALF_UP
from django.conf import settings
from geopy.distance import geodesic

TWO_PLACES = Decimal('0.01')


def _money(value):
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def distance_km(lat1, lng1, lat2, lng2):
    """Get distance in kilometers"""
    return geodesic((lat1, lng1), (lat2, lng2)).km


def billable_hours(start_time, end_time):
    """Whole hours charged for a window; any started hour counts"""
    seconds = (end_time - start_time).total_seconds()
    return max(math.ceil(seconds / 3600), 0)


def valet_charge(garage_address, point):
    if not point or garage_address is None:
        return Decimal('0.00')
    km = distance_km(garage_address.lat, garage_address.lng, point['lat'], point['lng'])
    rate = Decimal(str(settings.VALET_CHARGE_PER_KM))
    return _money(rate * Decimal(str(km)))


def calculate_price(slot, start_time, end_time, pickup=None, drop=None):
    """
    Price a booking of ``slot`` for the window.

    Args:
        slot: Slot instance (its garage address is used for valet distances)
        start_time, end_time: aware datetimes, start before end
        pickup, drop: optional {lat, lng} points for the valet service

    Returns a dict of Decimals: parking_charge, valet_pickup_charge,
    valet_drop_charge, total_price, plus the billed ``hours``.
    """
    hours = billable_hours(start_time, end_time)
    parking_charge = _money(slot.price_per_hour * hours)

    address = getattr(slot.garage, 'address', None)
    pickup_charge = valet_charge(address, pickup)
    drop_charge = valet_charge(address, drop)

    return {
        'hours': hours,
        'price_per_hour': slot.price_per_hour,
        'parking_charge': parking_charge,
        'valet_pickup_charge': pickup_charge,
        'valet_drop_charge': drop_charge,
        'total_price': parking_charge + pickup_charge + drop_charge,
    }
