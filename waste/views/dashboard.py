"""
Dashboard summary endpoint.

``hospitalId`` narrows the caller-scoped figures; non-HQ users are
limited to their own hospitals and default to their primary one.
"""
from rest_framework.decorators import api_view
from rest_framework.response import Response

from waste.services.dashboard import get_dashboard_summary
from waste.services.scope import resolve_hospital_scope


@api_view(['GET'])
def dashboard_summary(request):
    hospital_id = resolve_hospital_scope(request.user, request.query_params.get('hospitalId'))
    return Response(get_dashboard_summary(hospital_id))
