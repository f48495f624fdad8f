"""
Nonconformity tracker.

Issues are reported from the field against a hospital, optionally with
a scanned tag.  The tag is matched against collections of any hospital;
an unmatched tag is kept as text without a link.  Resolution is one
way and idempotent.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

import bleach
from django.db import transaction
from django.db.models import Count, Max, Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from waste.exceptions import HospitalNotFound, InvalidIssueCategory, IssueNotFound
from waste.models import Hospital, Issue, Location, WasteCollection

from .audit import log_action

logger = logging.getLogger(__name__)

STATUS_OPEN = 'open'
STATUS_RESOLVED = 'resolved'
STATUS_ALL = 'all'
STATUSES = (STATUS_OPEN, STATUS_RESOLVED, STATUS_ALL)

UNKNOWN = 'Unknown'


def clean_description(text: str) -> str:
    return bleach.clean(text or '', tags=[], strip=True).strip()


def create_issue(*, user, hospital_id: int, category: str, description: str,
                 tag_code: Optional[str] = None, location_code: Optional[str] = None,
                 photo_urls: Optional[Iterable[str]] = None) -> Issue:
    if category not in Issue.CATEGORIES:
        raise InvalidIssueCategory(f'Invalid issue category: {category}')
    hospital = Hospital.objects.filter(pk=hospital_id).first()
    if hospital is None:
        raise HospitalNotFound()
    description = clean_description(description)
    if not description:
        raise ValidationError({'description': 'This field may not be blank.'})

    collection = None
    if tag_code:
        collection = WasteCollection.objects.filter(tag_code=tag_code).first()
    location = None
    if location_code:
        location = Location.objects.filter(hospital=hospital, code=location_code).first()

    issue = Issue.objects.create(
        hospital=hospital,
        waste_collection=collection,
        location=location,
        tag_code=tag_code or None,
        category=category,
        description=description,
        reported_by=user if getattr(user, 'is_authenticated', False) else None,
        photo_urls=list(photo_urls or []),
    )
    log_action(user=user, action='issue_create', object_type='issue', object_id=issue.id,
               detail={'hospitalId': hospital.id, 'category': category, 'tagCode': tag_code,
                       'linked': collection is not None})
    logger.info('issue reported id=%s hospital=%s category=%s', issue.id, hospital.code, category)
    return issue


def get_issue(issue_id: int) -> Issue:
    issue = Issue.objects.select_related('hospital', 'reported_by', 'location').filter(pk=issue_id).first()
    if issue is None:
        raise IssueNotFound()
    return issue


def resolve_issue(*, user, issue_id: int) -> Issue:
    """Mark an issue resolved; an already resolved issue is returned as is."""
    with transaction.atomic():
        issue = Issue.objects.select_for_update().filter(pk=issue_id).first()
        if issue is None:
            raise IssueNotFound()
        if issue.is_resolved:
            return get_issue(issue_id)
        issue.is_resolved = True
        issue.resolved_at = timezone.now()
        issue.save(update_fields=['is_resolved', 'resolved_at'])
    log_action(user=user, action='issue_resolve', object_type='issue', object_id=issue.id)
    logger.info('issue resolved id=%s', issue.id)
    return get_issue(issue_id)


def list_issues(hospital_ids: Optional[list[int]] = None, status: str = STATUS_ALL) -> list[Issue]:
    """Newest reported first. ``hospital_ids=None`` means every hospital."""
    if status not in STATUSES:
        raise ValidationError({'status': f'must be one of {", ".join(STATUSES)}'})
    qs = Issue.objects.select_related('hospital', 'reported_by', 'location')
    if hospital_ids is not None:
        qs = qs.filter(hospital_id__in=hospital_ids)
    if status == STATUS_OPEN:
        qs = qs.filter(is_resolved=False)
    elif status == STATUS_RESOLVED:
        qs = qs.filter(is_resolved=True)
    return list(qs.order_by('-reported_at', '-id'))


def reporter_name(issue: Issue) -> str:
    if issue.reported_by_id is None:
        return UNKNOWN
    return issue.reported_by.display_name() or UNKNOWN


def format_issue(issue: Issue) -> dict:
    return {
        'id': issue.id,
        'hospitalId': issue.hospital_id,
        'hospitalName': issue.hospital.name if issue.hospital_id else UNKNOWN,
        'wasteCollectionId': issue.waste_collection_id,
        'locationId': issue.location_id,
        'locationCode': issue.location.code if issue.location_id else None,
        'tagCode': issue.tag_code,
        'category': issue.category,
        'description': issue.description,
        'photoUrls': issue.photo_urls or [],
        'reportedById': issue.reported_by_id,
        'reportedByName': reporter_name(issue),
        'reportedAt': issue.reported_at.isoformat(),
        'isResolved': issue.is_resolved,
        'resolvedAt': issue.resolved_at.isoformat() if issue.resolved_at else None,
    }


def issues_summary(hospital_ids: Optional[list[int]] = None) -> dict:
    hospitals = Hospital.objects.filter(is_active=True)
    if hospital_ids is not None:
        hospitals = hospitals.filter(id__in=hospital_ids)
    hospitals = hospitals.annotate(
        open_count=Count('issues', filter=Q(issues__is_resolved=False)),
        resolved_count=Count('issues', filter=Q(issues__is_resolved=True)),
        last_issue_at=Max('issues__reported_at'),
    )
    rows = [
        {
            'id': h.id,
            'code': h.code,
            'name': h.name,
            'colorHex': h.color_hex,
            'openCount': h.open_count,
            'resolvedCount': h.resolved_count,
            'totalCount': h.open_count + h.resolved_count,
            'lastIssueAt': h.last_issue_at.isoformat() if h.last_issue_at else None,
        }
        for h in hospitals
    ]
    return {
        'openCount': sum(r['openCount'] for r in rows),
        'resolvedCount': sum(r['resolvedCount'] for r in rows),
        'totalCount': sum(r['totalCount'] for r in rows),
        'hospitals': rows,
    }
