import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404

from backend.core.model_cache import cache_garage_data, get_cached_garage
from backend.core.permissions import (
    ROLE_ADMIN, ROLE_MANAGER, allow_authenticated, check_row_level_permission, ensure_authenticated,
)
from backend.core.utils import apply_list_query
from backend.parties.models import Admin
from backend.parties.utils import check_company_permission, get_manager_company, get_or_create_customer
from .filters import GarageFilter, ReviewFilter
from .models import Garage, Slot, Verification, Review
from .search import filter_slots, free_slots, search_garages
from .serializers import (
    GarageSerializer, GarageUpdateSerializer, CreateGarageSerializer, SlotSerializer, VerificationSerializer,
    ReviewSerializer, SearchGaragesSerializer, AvailableSlotsSerializer,
)

logger = logging.getLogger('backend.garages')

GARAGE_SORTABLE_FIELDS = ('created_at', 'updated_at', 'display_name')


def _garage_queryset():
    return Garage.objects.select_related('address', 'company', 'verification')


# Garage views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def garage_list_create(request):
    """List garages (public) or create a garage for the caller's company (managers)"""
    if request.method == 'GET':
        filterset = GarageFilter(request.query_params, queryset=_garage_queryset())
        garages = apply_list_query(filterset.qs, request.query_params, GARAGE_SORTABLE_FIELDS)
        return Response(GarageSerializer(garages, many=True).data)

    ensure_authenticated(request)
    if not allow_authenticated(ROLE_MANAGER)().has_permission(request, None):
        return Response({'error': 'Only managers can create garages'}, status=status.HTTP_403_FORBIDDEN)

    company = get_manager_company(request.user)
    serializer = CreateGarageSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            garage = serializer.save(company=company)
    except IntegrityError as e:
        logger.error(f"IntegrityError creating garage: {str(e)}", exc_info=True)
        return Response({'error': 'Database error occurred while creating garage'}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(
        f"Garage '{garage.display_name}' ({garage.pk}) created for company {company.pk} "
        f"with {garage.slots.count()} slots by {request.user.pk}"
    )
    garage = _garage_queryset().get(pk=garage.pk)
    return Response(GarageSerializer(garage).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def garage_count(request):
    filterset = GarageFilter(request.query_params, queryset=Garage.objects.all())
    return Response({'count': filterset.qs.count()})


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def garage_detail(request, pk):
    """Retrieve (public), update or delete (company managers or admins) a garage"""
    if request.method == 'GET':
        data = get_cached_garage(pk)
        if data is None:
            garage = get_object_or_404(_garage_queryset(), pk=pk)
            data = GarageSerializer(garage).data
            cache_garage_data(pk, data)
        return Response(data)

    ensure_authenticated(request)
    garage = get_object_or_404(_garage_queryset(), pk=pk)
    check_company_permission(request.user, garage.company_id)

    if request.method == 'PATCH':
        serializer = GarageUpdateSerializer(garage, data=request.data, partial=True)
        if serializer.is_valid():
            with transaction.atomic():
                serializer.save()
            logger.info(f"Garage {garage.pk} updated by {request.user.pk}")
            return Response(GarageSerializer(_garage_queryset().get(pk=garage.pk)).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        logger.info(f"Garage {garage.pk} ({garage.display_name}) deleted by {request.user.pk}")
        garage.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([allow_authenticated(ROLE_MANAGER)])
def my_garages(request):
    """Garages of the caller's company"""
    company = get_manager_company(request.user)
    filterset = GarageFilter(request.query_params, queryset=_garage_queryset().filter(company=company))
    garages = apply_list_query(filterset.qs, request.query_params, GARAGE_SORTABLE_FIELDS)
    return Response({
        'garages': GarageSerializer(garages, many=True).data,
        'count': filterset.qs.count(),
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def garage_search(request):
    """
    Search verified garages with free slots for a time window.

    Request body:
        start_time, end_time: ISO datetimes, start before end
        ne, sw: {lat, lng} corners of the visible map area
        type, price_per_hour_min, price_per_hour_max: optional slot filters
        length, width, height: optional minimum slot size
        skip, take: pagination
    """
    serializer = SearchGaragesSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    total, garages = search_garages(serializer.validated_data)
    logger.debug(f"Garage search matched {total} garages")
    return Response({'garages': garages, 'count': total})


# Slot views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def garage_slots(request, garage_id):
    """List the slots of a garage (public) or add one (company managers or admins)"""
    garage = get_object_or_404(Garage, pk=garage_id)

    if request.method == 'GET':
        queryset = garage.slots.all()
        slot_type = request.query_params.get('type')
        if slot_type:
            queryset = queryset.filter(type=slot_type)
        slots = apply_list_query(queryset, request.query_params, ('price_per_hour', 'type', 'created_at'))
        return Response(SlotSerializer(slots, many=True).data)

    ensure_authenticated(request)
    check_company_permission(request.user, garage.company_id)
    serializer = SlotSerializer(data=request.data)
    if serializer.is_valid():
        slot = serializer.save(garage=garage)
        logger.info(f"Slot {slot.pk} added to garage {garage.pk} by {request.user.pk}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([AllowAny])
def available_slots(request, garage_id):
    """Free slots of a garage for a time window, optionally of one type"""
    garage = get_object_or_404(Garage, pk=garage_id)
    serializer = AvailableSlotsSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    slots = filter_slots(garage.slots.all(), data)
    slots = free_slots(slots, data['start_time'], data['end_time']).order_by('price_per_hour', 'id')
    return Response(SlotSerializer(slots, many=True).data)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def slot_detail(request, pk):
    """Retrieve (public), update or delete (company managers or admins) a slot"""
    slot = get_object_or_404(Slot.objects.select_related('garage'), pk=pk)

    if request.method == 'GET':
        return Response(SlotSerializer(slot).data)

    ensure_authenticated(request)
    check_company_permission(request.user, slot.garage.company_id)

    if request.method == 'PATCH':
        serializer = SlotSerializer(slot, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        logger.info(f"Slot {slot.pk} removed from garage {slot.garage_id} by {request.user.pk}")
        slot.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Verification views
@api_view(['GET', 'POST'])
@permission_classes([allow_authenticated(ROLE_ADMIN)])
def verification_list_create(request):
    """List verifications or set the verification state of a garage (admins)"""
    if request.method == 'GET':
        queryset = Verification.objects.select_related('garage')
        verified = request.query_params.get('verified')
        if verified:
            queryset = queryset.filter(verified=verified.lower() == 'true')
        verifications = apply_list_query(queryset, request.query_params, ('created_at', 'updated_at'))
        return Response(VerificationSerializer(verifications, many=True).data)

    serializer = VerificationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    garage = serializer.validated_data['garage']
    admin = get_object_or_404(Admin, pk=request.user.pk)
    verification, created = Verification.objects.update_or_create(
        garage=garage,
        defaults={'verified': serializer.validated_data.get('verified', False), 'admin': admin},
    )
    logger.info(
        f"Garage {garage.pk} marked {'verified' if verification.verified else 'unverified'} by admin {admin.pk}"
    )
    return Response(
        VerificationSerializer(verification).data,
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(['GET'])
@permission_classes([allow_authenticated(ROLE_ADMIN)])
def verification_count(request):
    queryset = Verification.objects.all()
    verified = request.query_params.get('verified')
    if verified:
        queryset = queryset.filter(verified=verified.lower() == 'true')
    return Response({'count': queryset.count()})


# Review views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def review_list_create(request):
    """List reviews (public, filter by garage) or review a garage"""
    if request.method == 'GET':
        filterset = ReviewFilter(request.query_params, queryset=Review.objects.select_related('customer'))
        reviews = apply_list_query(filterset.qs, request.query_params, ('created_at', 'rating'))
        return Response(ReviewSerializer(reviews, many=True).data)

    user = ensure_authenticated(request)
    serializer = ReviewSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    customer = get_or_create_customer(user)
    data = serializer.validated_data
    review, created = Review.objects.update_or_create(
        customer=customer,
        garage=data['garage'],
        defaults={'rating': data['rating'], 'comment': data.get('comment')},
    )
    logger.info(f"Review {review.pk} on garage {review.garage_id} {'created' if created else 'updated'} by {user.pk}")
    return Response(
        ReviewSerializer(review).data,
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(['GET'])
@permission_classes([AllowAny])
def review_count(request):
    filterset = ReviewFilter(request.query_params, queryset=Review.objects.all())
    return Response({'count': filterset.qs.count()})


@api_view(['GET', 'DELETE'])
@permission_classes([AllowAny])
def review_detail(request, pk):
    """Retrieve (public) or delete (author or admin) a review"""
    if request.method == 'GET':
        review = get_object_or_404(Review.objects.select_related('customer'), pk=pk)
        return Response(ReviewSerializer(review).data)

    ensure_authenticated(request)
    review = get_object_or_404(Review, pk=pk)
    check_row_level_permission(request.user, review.customer_id)
    logger.info(f"Review {review.pk} deleted by {request.user.pk}")
    review.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)
