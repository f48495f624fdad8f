from rest_framework.decorators import api_view
from rest_framework.response import Response

from waste.serializers.benchmark import (
    CategoryComparisonQuerySerializer,
    ComparisonQuerySerializer,
    HospitalPeriodQuerySerializer,
    PeriodQuerySerializer,
)
from waste.services import benchmark
from waste.services.scope import ensure_hospital_access


def _validated(serializer_class, request):
    q = serializer_class(data=request.query_params)
    q.is_valid(raise_exception=True)
    return q.validated_data


@api_view(['GET'])
def performance(request):
    """Per-hospital scorecards against the category reference factors."""
    vd = _validated(PeriodQuerySerializer, request)
    return Response(benchmark.hospital_performance(vd['startDate'], vd['endDate']))


@api_view(['GET'])
def comparison(request):
    vd = _validated(ComparisonQuerySerializer, request)
    return Response(benchmark.cross_comparison(
        vd['metric'], vd['startDate'], vd['endDate'],
        hospital_ids=vd['hospitalFilter'], category_id=vd['categoryFilter'],
    ))


@api_view(['GET'])
def category_comparison(request):
    vd = _validated(CategoryComparisonQuerySerializer, request)
    hospital = ensure_hospital_access(request.user, vd['hospitalId'])
    return Response(benchmark.category_comparison(hospital.id, vd['metric'], vd['startDate'], vd['endDate']))


@api_view(['GET'])
def category_performance(request):
    vd = _validated(HospitalPeriodQuerySerializer, request)
    hospital = ensure_hospital_access(request.user, vd['hospitalId'])
    return Response(benchmark.category_performance(hospital, vd['startDate'], vd['endDate']))
