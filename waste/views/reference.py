"""Hospital and waste type lookups used to populate client pickers."""
from rest_framework.decorators import api_view
from rest_framework.response import Response

from waste.models import Hospital, WasteType
from waste.services.pricing import current_rate_table
from waste.services.scope import visible_hospital_ids


@api_view(['GET'])
def list_hospitals(request):
    qs = Hospital.objects.filter(is_active=True)
    visible = visible_hospital_ids(request.user)
    if visible is not None:
        qs = qs.filter(id__in=visible)
    return Response([
        {'id': h.id, 'code': h.code, 'name': h.name, 'colorHex': h.color_hex, 'isActive': h.is_active}
        for h in qs
    ])


@api_view(['GET'])
def list_waste_types(request):
    current = {row['wasteTypeId']: row['costPerKg'] for row in current_rate_table()}
    return Response([
        {
            'id': wt.id,
            'code': wt.code,
            'name': wt.name,
            'colorHex': wt.color_hex,
            'costPerKg': float(wt.cost_per_kg),
            'currentCostPerKg': current.get(wt.id),
            'isActive': wt.is_active,
        }
        for wt in WasteType.objects.filter(is_active=True)
    ])
