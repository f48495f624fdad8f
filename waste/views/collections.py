"""
Waste collection endpoints: list, tag (create) and weigh-in by tag.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from waste.permissions import CanRecordCollections
from waste.serializers.collections import (
    CollectionCreateSerializer,
    CollectionListQuerySerializer,
    CollectionWeighSerializer,
)
from waste.services.collections import (
    create_collection,
    format_collection,
    get_collection_by_tag,
    recent_collections,
    weigh_collection,
)
from waste.exceptions import CollectionNotFound
from waste.services.scope import ensure_hospital_access, resolve_hospital_scope


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, CanRecordCollections])
def collections(request):
    if request.method == 'POST':
        s = CollectionCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        hospital = ensure_hospital_access(request.user, vd['hospitalId'])
        collection = create_collection(
            user=request.user,
            hospital_id=hospital.id,
            waste_type_code=vd['wasteTypeCode'],
            tag_code=vd.get('tagCode') or None,
            location_code=vd.get('locationCode') or None,
        )
        return Response(format_collection(collection), status=status.HTTP_201_CREATED)

    q = CollectionListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    hospital_id = resolve_hospital_scope(request.user, q.validated_data.get('hospitalId'))
    rows = recent_collections(hospital_id, q.validated_data.get('limit'))
    return Response([format_collection(c) for c in rows])


@api_view(['GET'])
def collection_by_tag(request, tag_code: str):
    collection = get_collection_by_tag(tag_code)
    if collection is None:
        raise CollectionNotFound()
    ensure_hospital_access(request.user, collection.hospital_id)
    return Response(format_collection(collection))


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, CanRecordCollections])
def weigh(request, tag_code: str):
    s = CollectionWeighSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    existing = get_collection_by_tag(tag_code)
    if existing is None:
        raise CollectionNotFound()
    ensure_hospital_access(request.user, existing.hospital_id)
    collection = weigh_collection(
        user=request.user,
        tag_code=tag_code,
        weight_kg=s.validated_data['weightKg'],
        is_manual_weight=s.validated_data['isManualWeight'],
    )
    return Response(format_collection(collection))
