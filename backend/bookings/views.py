import logging
import secrets

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404

from backend.core.permissions import ROLE_ADMIN, ROLE_VALET, allow_authenticated, has_role
from backend.core.utils import apply_list_query
from backend.garages.models import Garage, Slot
from backend.garages.search import is_slot_free
from backend.parties.models import Manager, Valet
from backend.parties.utils import check_company_permission, get_or_create_customer, valid_valet
from .models import Booking, BookingStatus, BookingTimeline, ValetAssignment
from .pricing import calculate_price
from .serializers import (
    BookingSerializer, BookingTimelineSerializer, CalculatePriceSerializer, CreateBookingSerializer,
    AssignValetSerializer, UpdateBookingStatusSerializer,
)

logger = logging.getLogger('backend.bookings')

BOOKING_SORTABLE_FIELDS = ('start_time', 'end_time', 'created_at', 'total_price')

PICKUP_STATUSES = (BookingStatus.BOOKED, BookingStatus.VALET_ASSIGNED_FOR_CHECK_IN)
DROP_STATUSES = (BookingStatus.CHECKED_IN, BookingStatus.VALET_ASSIGNED_FOR_CHECK_OUT)


def _booking_queryset():
    return Booking.objects.select_related('slot__garage', 'customer', 'valet_assignment')


def _filter_status(queryset, query_params):
    booking_status = query_params.get('status')
    if booking_status:
        queryset = queryset.filter(status__in=booking_status.split(','))
    return queryset


def _generate_passcode():
    return f"{secrets.randbelow(10 ** 6):06d}"


def check_booking_access(user, booking):
    """The booking's customer, staff of the owning company and admins may see a booking"""
    if booking.customer_id == user.pk:
        return True
    return check_company_permission(user, booking.slot.garage.company_id, allow_valets=True)


def _company_staff(user, company_id):
    """Return (manager, valet) rows of ``user`` in the company; at most one is set"""
    manager = Manager.objects.filter(pk=user.pk, company_id=company_id).first()
    if manager is not None:
        return manager, None
    return None, Valet.objects.filter(pk=user.pk, company_id=company_id).first()


def _move_status(booking, new_status, manager=None, valet=None):
    """Advance the booking and append the matching timeline entry"""
    booking.status = new_status
    booking.save(update_fields=['status', 'updated_at'])
    BookingTimeline.objects.create(booking=booking, status=new_status, manager=manager, valet=valet)


@api_view(['POST'])
@permission_classes([AllowAny])
def booking_price(request):
    """
    Quote the price of a booking without creating it.

    Request body:
        slot: slot id
        start_time, end_time: ISO datetimes
        pickup, drop: optional {lat, lng} for the valet service
    """
    serializer = CalculatePriceSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    price = calculate_price(
        data['slot'], data['start_time'], data['end_time'],
        pickup=data.get('pickup'), drop=data.get('drop'),
    )
    return Response(price)


@api_view(['GET', 'POST'])
@permission_classes([allow_authenticated()])
def booking_list_create(request):
    """List every booking (admins) or book a slot (any authenticated user)"""
    if request.method == 'GET':
        if not has_role(request.user, ROLE_ADMIN):
            raise PermissionDenied()
        queryset = _filter_status(_booking_queryset(), request.query_params)
        bookings = apply_list_query(queryset, request.query_params, BOOKING_SORTABLE_FIELDS)
        return Response(BookingSerializer(bookings, many=True).data)

    serializer = CreateBookingSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    slot = data['slot']
    pickup, drop = data.get('pickup'), data.get('drop')

    with transaction.atomic():
        # Lock the slot so concurrent bookings of it are serialized
        Slot.objects.select_for_update().get(pk=slot.pk)
        if not is_slot_free(slot.pk, data['start_time'], data['end_time']):
            logger.info(f"Slot {slot.pk} already booked between {data['start_time']} and {data['end_time']}")
            return Response(
                {'error': 'Slot is not available for the selected time.'},
                status=status.HTTP_400_BAD_REQUEST,
            )

        customer = get_or_create_customer(request.user)
        price = calculate_price(slot, data['start_time'], data['end_time'], pickup=pickup, drop=drop)
        booking = Booking.objects.create(
            slot=slot,
            customer=customer,
            start_time=data['start_time'],
            end_time=data['end_time'],
            vehicle_number=data['vehicle_number'],
            phone_number=data.get('phone_number') or None,
            price_per_hour=slot.price_per_hour,
            total_price=price['total_price'],
            passcode=_generate_passcode(),
        )
        if pickup or drop:
            ValetAssignment.objects.create(
                booking=booking,
                pickup_lat=pickup['lat'] if pickup else None,
                pickup_lng=pickup['lng'] if pickup else None,
                return_lat=drop['lat'] if drop else None,
                return_lng=drop['lng'] if drop else None,
            )
        BookingTimeline.objects.create(booking=booking, status=BookingStatus.BOOKED)

    logger.info(
        f"Booking {booking.pk} created for slot {slot.pk} by {request.user.pk}: "
        f"total={price['total_price']}"
    )
    booking = _booking_queryset().get(pk=booking.pk)
    return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([allow_authenticated()])
def my_bookings(request):
    """The caller's bookings, optionally filtered by status"""
    queryset = _filter_status(_booking_queryset().filter(customer_id=request.user.pk), request.query_params)
    bookings = apply_list_query(queryset, request.query_params, BOOKING_SORTABLE_FIELDS)
    return Response({
        'bookings': BookingSerializer(bookings, many=True).data,
        'count': queryset.count(),
    })


@api_view(['GET'])
@permission_classes([allow_authenticated()])
def garage_bookings(request, garage_id):
    """Bookings of a garage (managers of the owning company or admins)"""
    garage = get_object_or_404(Garage, pk=garage_id)
    check_company_permission(request.user, garage.company_id)

    queryset = _filter_status(_booking_queryset().filter(slot__garage=garage), request.query_params)
    bookings = apply_list_query(queryset, request.query_params, BOOKING_SORTABLE_FIELDS)
    return Response({
        'bookings': BookingSerializer(bookings, many=True).data,
        'count': queryset.count(),
    })


@api_view(['GET'])
@permission_classes([allow_authenticated()])
def booking_detail(request, pk):
    booking = get_object_or_404(_booking_queryset(), pk=pk)
    check_booking_access(request.user, booking)
    return Response(BookingSerializer(booking).data)


@api_view(['GET'])
@permission_classes([allow_authenticated()])
def booking_timeline(request, pk):
    """Status history of a booking, oldest first"""
    booking = get_object_or_404(_booking_queryset(), pk=pk)
    check_booking_access(request.user, booking)
    return Response(BookingTimelineSerializer(booking.timelines.all(), many=True).data)


@api_view(['POST'])
@permission_classes([allow_authenticated()])
def assign_valet(request, pk):
    """
    Assign the pickup and/or return valet of a booking (company managers).

    Both valets must work for the company owning the garage. The status
    moves to VALET_ASSIGNED_FOR_CHECK_IN / VALET_ASSIGNED_FOR_CHECK_OUT
    when the booking is at the matching stage. A pickup valet needs a pickup
    point on the booking and a return valet a drop point.
    """
    booking = get_object_or_404(_booking_queryset(), pk=pk)
    company_id = booking.slot.garage.company_id
    manager = Manager.objects.filter(pk=request.user.pk, company_id=company_id).first()
    if manager is None:
        raise PermissionDenied('Only managers of this company can assign valets.')

    serializer = AssignValetSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    valets = {}
    for field in ('pickup_valet', 'return_valet'):
        valet_id = serializer.validated_data.get(field)
        if not valet_id:
            continue
        valet = Valet.objects.filter(pk=valet_id, company_id=company_id).first()
        if valet is None:
            return Response(
                {'error': f'Valet {valet_id} does not work for this company.'},
                status=status.HTTP_400_BAD_REQUEST,
            )
        valets[field] = valet

    assignment = ValetAssignment.objects.filter(booking=booking).first()
    if 'pickup_valet' in valets and not (assignment and assignment.has_pickup):
        return Response({'error': 'Booking has no pickup point.'}, status=status.HTTP_400_BAD_REQUEST)
    if 'return_valet' in valets and not (assignment and assignment.has_return):
        return Response({'error': 'Booking has no drop point.'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        for field, valet in valets.items():
            setattr(assignment, field, valet)
        assignment.save()

        if 'pickup_valet' in valets and booking.status == BookingStatus.BOOKED:
            _move_status(booking, BookingStatus.VALET_ASSIGNED_FOR_CHECK_IN, manager=manager)
        elif 'return_valet' in valets and booking.status == BookingStatus.CHECKED_IN:
            _move_status(booking, BookingStatus.VALET_ASSIGNED_FOR_CHECK_OUT, manager=manager)

    logger.info(
        f"Valets {[v.pk for v in valets.values()]} assigned to booking {booking.pk} by manager {manager.pk}"
    )
    booking = _booking_queryset().get(pk=booking.pk)
    return Response(BookingSerializer(booking).data)


@api_view(['POST'])
@permission_classes([allow_authenticated()])
def update_booking_status(request, pk):
    """Move a booking forward in its lifecycle (company managers and valets)"""
    booking = get_object_or_404(_booking_queryset(), pk=pk)
    manager, valet = _company_staff(request.user, booking.slot.garage.company_id)
    if manager is None and valet is None:
        raise PermissionDenied('Only staff of this company can update bookings.')

    serializer = UpdateBookingStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    new_status = serializer.validated_data['status']
    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(pk=booking.pk)
        if BookingStatus.rank(new_status) <= BookingStatus.rank(booking.status):
            logger.warning(f"Rejected status change of booking {booking.pk}: {booking.status} -> {new_status}")
            return Response(
                {'error': f'Cannot move booking from {booking.status} to {new_status}.'},
                status=status.HTTP_400_BAD_REQUEST,
            )
        _move_status(booking, new_status, manager=manager, valet=valet)

    logger.info(f"Booking {booking.pk} moved to {new_status} by {request.user.pk}")
    booking = _booking_queryset().get(pk=booking.pk)
    return Response(BookingSerializer(booking).data)


def _valet_trips(request, lat_field, valet_field, statuses):
    valet = valid_valet(request.user.pk)
    queryset = _booking_queryset().filter(
        slot__garage__company_id=valet.company_id,
        status__in=statuses,
        **{f'valet_assignment__{lat_field}__isnull': False},
    )
    if (request.query_params.get('mine') or '').lower() == 'true':
        queryset = queryset.filter(**{f'valet_assignment__{valet_field}': valet})
    else:
        queryset = queryset.filter(
            Q(**{f'valet_assignment__{valet_field}__isnull': True}) |
            Q(**{f'valet_assignment__{valet_field}': valet})
        )
    queryset = queryset.order_by('start_time')
    trips = apply_list_query(queryset, request.query_params, BOOKING_SORTABLE_FIELDS)
    return Response({
        'bookings': BookingSerializer(trips, many=True).data,
        'count': queryset.count(),
    })


@api_view(['GET'])
@permission_classes([allow_authenticated(ROLE_VALET)])
def valet_pickups(request):
    """Pickup trips of the caller's company still waiting for a valet or assigned to the caller"""
    return _valet_trips(request, 'pickup_lat', 'pickup_valet', PICKUP_STATUSES)


@api_view(['GET'])
@permission_classes([allow_authenticated(ROLE_VALET)])
def valet_drops(request):
    """Drop trips of the caller's company still waiting for a valet or assigned to the caller"""
    return _valet_trips(request, 'return_lat', 'return_valet', DROP_STATUSES)
