import pytest

from waste.exceptions import InvalidIssueCategory, IssueNotFound
from waste.models import Issue, User
from waste.services.issues import (
    create_issue,
    format_issue,
    issues_summary,
    list_issues,
    resolve_issue,
)

from .helpers import make_collection

pytestmark = pytest.mark.django_db


def test_tag_links_to_collection_of_any_hospital(hospitals, waste_types, collector_h1):
    h1, h2, _ = hospitals
    collection = make_collection(h2, waste_types['medical'], 'TAG-X')
    issue = create_issue(user=collector_h1, hospital_id=h1.id, category='segregation',
                         description='Wrong bag', tag_code='TAG-X')
    assert issue.waste_collection == collection
    assert issue.tag_code == 'TAG-X'


def test_unmatched_tag_is_kept_without_link(hospitals, collector_h1):
    issue = create_issue(user=collector_h1, hospital_id=hospitals[0].id, category='technical',
                         description='Scale broken', tag_code='NO-SUCH-TAG')
    assert issue.waste_collection is None
    assert issue.tag_code == 'NO-SUCH-TAG'
    assert issue.is_resolved is False


def test_unknown_category_is_rejected(hospitals, collector_h1):
    with pytest.raises(InvalidIssueCategory):
        create_issue(user=collector_h1, hospital_id=hospitals[0].id, category='misc', description='x')
    assert not Issue.objects.exists()


def test_description_markup_is_stripped(hospitals, collector_h1):
    issue = create_issue(user=collector_h1, hospital_id=hospitals[0].id, category='other',
                         description='<script>alert(1)</script>Lid <b>open</b>')
    assert '<' not in issue.description
    assert 'Lid open' in issue.description


def test_resolve_is_idempotent(hospitals, manager_h1):
    issue = Issue.objects.create(hospital=hospitals[0], category='other', description='x')
    first = resolve_issue(user=manager_h1, issue_id=issue.id)
    assert first.is_resolved is True
    assert first.resolved_at is not None
    again = resolve_issue(user=manager_h1, issue_id=issue.id)
    assert again.resolved_at == first.resolved_at


def test_resolve_unknown_issue(db, manager_h1):
    with pytest.raises(IssueNotFound):
        resolve_issue(user=manager_h1, issue_id=123456)


def test_status_filters(hospitals, manager_h1):
    issue = Issue.objects.create(hospital=hospitals[0], category='other', description='x')
    assert [i.id for i in list_issues(status='open')] == [issue.id]
    assert list_issues(status='resolved') == []
    resolve_issue(user=manager_h1, issue_id=issue.id)
    assert list_issues(status='open') == []
    assert [i.id for i in list_issues(status='resolved')] == [issue.id]
    assert [i.id for i in list_issues(status='all')] == [issue.id]


def test_reporter_name_fallbacks(hospitals):
    named = User.objects.create_user(username='ayse', first_name='Ayşe', last_name='Kaya')
    bare = User.objects.create_user(username='bare')
    rows = [
        Issue.objects.create(hospital=hospitals[0], category='other', description='a', reported_by=named),
        Issue.objects.create(hospital=hospitals[0], category='other', description='b', reported_by=bare),
        Issue.objects.create(hospital=hospitals[0], category='other', description='c'),
    ]
    names = [format_issue(i)['reportedByName'] for i in rows]
    assert names == ['Ayşe Kaya', 'bare', 'Unknown']
    assert format_issue(rows[0])['hospitalName'] == hospitals[0].name


def test_list_is_newest_first_and_scoped(hospitals):
    h1, h2, _ = hospitals
    a = Issue.objects.create(hospital=h1, category='other', description='a')
    b = Issue.objects.create(hospital=h2, category='other', description='b')
    c = Issue.objects.create(hospital=h1, category='other', description='c')
    assert [i.id for i in list_issues()] == [c.id, b.id, a.id]
    assert [i.id for i in list_issues([h1.id])] == [c.id, a.id]


def test_summary_per_hospital(hospitals, manager_h1):
    h1, h2, _ = hospitals
    Issue.objects.create(hospital=h1, category='other', description='a')
    resolved = Issue.objects.create(hospital=h1, category='other', description='b')
    resolve_issue(user=manager_h1, issue_id=resolved.id)

    summary = issues_summary()
    assert summary['openCount'] == 1 and summary['resolvedCount'] == 1 and summary['totalCount'] == 2
    rows = {r['code']: r for r in summary['hospitals']}
    assert rows['H1']['totalCount'] == 2
    assert rows['H2']['lastIssueAt'] is None
    assert [r['code'] for r in issues_summary([h2.id])['hospitals']] == ['H2']
