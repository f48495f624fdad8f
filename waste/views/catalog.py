"""
Settings endpoints: location categories, locations, operational
coefficients and the waste type rate history.

Reads are open to any authenticated user (coefficients and locations
within their hospital scope); writes need the matching capability.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from waste.permissions import (
    CanManageCoefficients,
    CanManageLocationCategories,
    CanManageLocations,
    Capability,
    has_capability,
)
from waste.serializers.catalog import (
    CoefficientUpsertSerializer,
    LocationCategoryCreateSerializer,
    LocationCategoryUpdateSerializer,
    LocationCreateSerializer,
    LocationUpdateSerializer,
    WasteTypeCostUpsertSerializer,
)
from waste.services import coefficients as coefficient_service
from waste.services import locations as location_service
from waste.services.pricing import format_rate, list_rates, upsert_rates
from waste.services.scope import ensure_hospital_access, scoped_hospital_ids


def _require(user, capability: str):
    if not has_capability(user, capability):
        raise PermissionDenied(f'missing capability: {capability}')


# ---------------------------------------------------------------------
# Location categories
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
def location_categories(request):
    if request.method == 'POST':
        _require(request.user, Capability.MANAGE_LOCATION_CATEGORIES)
        s = LocationCategoryCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        category = location_service.create_category(
            user=request.user,
            code=vd['code'],
            name=vd['name'],
            unit=vd['unit'],
            reference_waste_factor=vd.get('referenceWasteFactor'),
        )
        return Response(location_service.format_category(category), status=status.HTTP_201_CREATED)
    return Response([location_service.format_category(c) for c in location_service.list_categories()])


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, CanManageLocationCategories])
def location_category_detail(request, pk: int):
    s = LocationCategoryUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    category = location_service.update_category_factor(
        user=request.user, category_id=pk, reference_waste_factor=s.validated_data['referenceWasteFactor']
    )
    return Response(location_service.format_category(category))


# ---------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
def locations(request):
    if request.method == 'POST':
        _require(request.user, Capability.MANAGE_LOCATIONS)
        s = LocationCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        hospital = ensure_hospital_access(request.user, vd['hospitalId'])
        location = location_service.create_location(
            user=request.user, hospital=hospital, category_id=vd['categoryId'], custom_label=vd.get('customLabel'),
        )
        return Response(location_service.format_location(location), status=status.HTTP_201_CREATED)
    hospital_ids = scoped_hospital_ids(request.user, request.query_params.get('hospitalId'))
    return Response([location_service.format_location(loc) for loc in location_service.list_locations(hospital_ids)])


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, CanManageLocations])
def location_detail(request, pk: int):
    s = LocationUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    location = location_service.get_location(pk)
    ensure_hospital_access(request.user, location.hospital_id)
    location = location_service.set_location_active(
        user=request.user, location=location, is_active=s.validated_data['isActive']
    )
    return Response(location_service.format_location(location))


# ---------------------------------------------------------------------
# Operational coefficients
# ---------------------------------------------------------------------
@api_view(['GET'])
def hospital_coefficients(request, hospital_id: int):
    hospital = ensure_hospital_access(request.user, hospital_id)
    rows = coefficient_service.list_coefficients(hospital.id, request.query_params.get('period') or None)
    return Response([coefficient_service.format_coefficient(c) for c in rows])


@api_view(['GET'])
def hospital_coefficient_periods(request, hospital_id: int):
    hospital = ensure_hospital_access(request.user, hospital_id)
    return Response(coefficient_service.list_periods(hospital.id))


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanManageCoefficients])
def upsert_coefficients(request):
    s = CoefficientUpsertSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    hospital = ensure_hospital_access(request.user, vd['hospitalId'])
    rows = coefficient_service.upsert_coefficients(
        user=request.user,
        hospital=hospital,
        period=vd['period'],
        values=[{'category_id': v['categoryId'], 'value': v['value']} for v in vd['values']],
    )
    return Response([coefficient_service.format_coefficient(c) for c in rows])


# ---------------------------------------------------------------------
# Waste type rate history
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
def waste_type_costs(request):
    if request.method == 'POST':
        _require(request.user, Capability.MANAGE_WASTE_TYPE_COSTS)
        s = WasteTypeCostUpsertSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        rows = upsert_rates(
            user=request.user,
            effective_from=vd['effectiveFrom'],
            costs=[{'waste_type_id': c['wasteTypeId'], 'cost_per_kg': c['costPerKg']} for c in vd['costs']],
        )
        return Response([format_rate(r) for r in rows])
    return Response([format_rate(r) for r in list_rates()])
