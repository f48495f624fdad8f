from rest_framework.decorators import api_view
from rest_framework.response import Response

from waste.services.analytics import get_analytics
from waste.services.scope import resolve_hospital_scope


@api_view(['GET'])
def analytics(request):
    """KPIs, risk, cost and time distribution for the requested hospital scope."""
    hospital_id = resolve_hospital_scope(request.user, request.query_params.get('hospitalId'))
    return Response(get_analytics(hospital_id))
