"""
Issue (nonconformity) endpoints.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from waste.permissions import Capability, CanResolveIssues, has_capability
from waste.serializers.issues import IssueCreateSerializer, IssueListQuerySerializer
from waste.services.issues import (
    create_issue,
    format_issue,
    get_issue,
    issues_summary,
    list_issues,
    resolve_issue,
)
from waste.services.scope import ensure_hospital_access, scoped_hospital_ids


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def issues(request):
    if request.method == 'POST':
        if not has_capability(request.user, Capability.REPORT_ISSUES):
            raise PermissionDenied('missing capability: report_issues')
        s = IssueCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        hospital = ensure_hospital_access(request.user, vd['hospitalId'])
        issue = create_issue(
            user=request.user,
            hospital_id=hospital.id,
            category=vd['category'],
            description=vd['description'],
            tag_code=vd.get('tagCode') or None,
            location_code=vd.get('locationCode') or None,
            photo_urls=vd.get('photoUrls'),
        )
        return Response(format_issue(get_issue(issue.id)), status=status.HTTP_201_CREATED)

    q = IssueListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    hospital_ids = scoped_hospital_ids(request.user, q.validated_data.get('hospitalId'))
    rows = list_issues(hospital_ids, q.validated_data['status'])
    return Response([format_issue(i) for i in rows])


@api_view(['GET'])
def issue_summary(request):
    return Response(issues_summary(scoped_hospital_ids(request.user, request.query_params.get('hospitalId'))))


@api_view(['GET'])
def issue_detail(request, pk: int):
    issue = get_issue(pk)
    ensure_hospital_access(request.user, issue.hospital_id)
    return Response(format_issue(issue))


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, CanResolveIssues])
def issue_resolve(request, pk: int):
    issue = get_issue(pk)
    ensure_hospital_access(request.user, issue.hospital_id)
    return Response(format_issue(resolve_issue(user=request.user, issue_id=pk)))
