"""
API error types and the unified DRF exception handler.

Domain errors are ``APIException`` subclasses so services can raise
them directly; the handler renders every failure as
``{"ok": false, "error": {"code", "message"}}``.
"""
from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class InvalidWasteType(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid waste type'
    default_code = 'invalid_waste_type'


class WasteTypeNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Waste type not found'
    default_code = 'waste_type_not_found'


class HospitalNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Hospital not found'
    default_code = 'hospital_not_found'


class LocationNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Location not found'
    default_code = 'location_not_found'


class CategoryNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Location category not found'
    default_code = 'category_not_found'


class CollectionNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Collection not found'
    default_code = 'collection_not_found'


class IssueNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Issue not found'
    default_code = 'issue_not_found'


class InvalidIssueCategory(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid issue category'
    default_code = 'invalid_issue_category'


class TagCodeConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Tag code already in use'
    default_code = 'tag_code_conflict'


class CollectionNotPending(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Collection is not awaiting a weigh-in'
    default_code = 'collection_not_pending'


class DuplicateCode(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Code already in use'
    default_code = 'duplicate_code'


class NoHospitalAssigned(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'No hospital assigned to this user'
    default_code = 'no_hospital_assigned'


PASSTHROUGH_HEADERS = ('WWW-Authenticate', 'Retry-After')


def _error_code(exc) -> str:
    if isinstance(exc, Http404):
        return 'not_found'
    if isinstance(exc, DjangoPermissionDenied):
        return 'permission_denied'
    if isinstance(exc, APIException):
        codes = exc.get_codes()
        if isinstance(codes, str):
            return codes
        return exc.default_code
    return 'api_error'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception('unhandled error in %s', type(view).__name__ if view else 'view', exc_info=exc)
        return Response(
            {'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error'}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') if set(resp.data) == {'detail'} else resp.data
    elif isinstance(resp.data, list):
        detail = resp.data
    else:
        detail = str(resp.data)
    return Response(
        {'ok': False, 'error': {'code': _error_code(exc), 'message': detail}},
        status=resp.status_code,
        headers={h: resp[h] for h in PASSTHROUGH_HEADERS if resp.has_header(h)},
    )
