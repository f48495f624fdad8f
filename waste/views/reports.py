from rest_framework.decorators import api_view
from rest_framework.response import Response

from waste.serializers.reports import ReportQuerySerializer
from waste.services.reports import ReportFilters, build_report
from waste.services.scope import ensure_hospital_access, scoped_hospital_ids


@api_view(['GET'])
def reports(request):
    """Completed-collection report between two days, inclusive."""
    q = ReportQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    hospital_ids = vd['hospitalFilter']
    if hospital_ids is None:
        hospital_ids = scoped_hospital_ids(request.user)
    else:
        for hospital_id in hospital_ids:
            ensure_hospital_access(request.user, hospital_id)
    filters = ReportFilters(
        start_date=vd['startDate'],
        end_date=vd['endDate'],
        hospital_ids=hospital_ids,
        waste_type_code=vd['wasteTypeFilter'],
        category_id=vd['categoryFilter'],
    )
    return Response(build_report(filters))
