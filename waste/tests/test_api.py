"""
Integration tests for the waste tracking API.

Exercises the field workflow (tag, weigh, report, resolve), hospital
scoping of reads and writes, and the settings endpoints, through DRF's
APIClient inside APITestCase.
"""
from datetime import date
from decimal import Decimal

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from ..models import (
    Hospital,
    Issue,
    Location,
    LocationCategory,
    OperationalCoefficient,
    Role,
    WasteCollection,
    WasteType,
    WasteTypeCost,
)
from .helpers import local_dt, make_collection, make_user


class WasteAPITests(APITestCase):
    def setUp(self) -> None:
        self.h1 = Hospital.objects.create(code="H1", name="Bahçeşehir", color_hex="#3b82f6")
        self.h2 = Hospital.objects.create(code="H2", name="Topkapı", color_hex="#8b5cf6")
        self.medical = WasteType.objects.create(
            code="medical", name="Tıbbi Atık", color_hex="#e11d48", cost_per_kg=Decimal("15.00")
        )
        WasteTypeCost.objects.create(
            waste_type=self.medical, effective_from=date(2025, 1, 1), cost_per_kg=Decimal("15.00")
        )
        self.icu = LocationCategory.objects.create(code="ICU", name="Yoğun Bakım", unit="Yatış Gün")
        self.location = Location.objects.create(hospital=self.h1, code="YB-1", category=self.icu)

        self.hq = make_user("hq.admin", roles=[Role.HQ])
        self.manager = make_user("manager.h1", roles=[Role.HOSPITAL_MANAGER, Role.COLLECTOR], hospitals=[self.h1])
        self.collector = make_user("collector.h1", roles=[Role.COLLECTOR], hospitals=[self.h1])
        self.collector2 = make_user("collector.h2", roles=[Role.COLLECTOR], hospitals=[self.h2])

    def authenticate(self, user) -> APIClient:
        """Return an authenticated APIClient for the given user."""
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    # -----------------------------------------------------------------
    # Field workflow
    # -----------------------------------------------------------------
    def test_collector_tags_and_weighs_a_collection(self):
        client = self.authenticate(self.collector)
        response = client.post(
            reverse("collections"),
            {"hospitalId": self.h1.id, "wasteTypeCode": "medical", "locationCode": "YB-1", "tagCode": "TAG-A1"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], "pending")
        self.assertIsNone(response.data["weightKg"])
        self.assertEqual(response.data["locationCode"], "YB-1")

        response = client.patch(
            reverse("collection-weigh", args=["TAG-A1"]), {"weightKg": 12.5}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "completed")
        self.assertEqual(response.data["weightKg"], 12.5)
        self.assertTrue(response.data["isManualWeight"])
        self.assertIsNotNone(response.data["weighedAt"])

        again = client.patch(reverse("collection-weigh", args=["TAG-A1"]), {"weightKg": 3}, format="json")
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(again.data["error"]["code"], "collection_not_pending")

    def test_unknown_location_code_still_creates(self):
        client = self.authenticate(self.collector)
        response = client.post(
            reverse("collections"),
            {"hospitalId": self.h1.id, "wasteTypeCode": "medical", "locationCode": "NOPE"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data["locationId"])
        self.assertTrue(response.data["tagCode"].startswith("TAG-"))

    def test_unknown_waste_type_is_bad_request(self):
        client = self.authenticate(self.collector)
        response = client.post(
            reverse("collections"), {"hospitalId": self.h1.id, "wasteTypeCode": "lava"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["ok"], False)
        self.assertEqual(response.data["error"]["code"], "invalid_waste_type")

    def test_duplicate_tag_is_conflict(self):
        make_collection(self.h1, self.medical, "TAG-DUP")
        client = self.authenticate(self.collector)
        response = client.post(
            reverse("collections"),
            {"hospitalId": self.h1.id, "wasteTypeCode": "medical", "tagCode": "TAG-DUP"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_weigh_unknown_tag_is_not_found(self):
        client = self.authenticate(self.collector)
        response = client.patch(reverse("collection-weigh", args=["GHOST"]), {"weightKg": 1}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["error"]["code"], "collection_not_found")

    def test_weigh_rejects_non_positive_weight(self):
        make_collection(self.h1, self.medical, "TAG-Z")
        client = self.authenticate(self.collector)
        response = client.patch(reverse("collection-weigh", args=["TAG-Z"]), {"weightKg": 0}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("weightKg", response.data["error"]["message"])

    def test_collector_cannot_write_to_foreign_hospital(self):
        client = self.authenticate(self.collector2)
        response = client.post(
            reverse("collections"), {"hospitalId": self.h1.id, "wasteTypeCode": "medical"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        make_collection(self.h1, self.medical, "TAG-H1")
        response = client.patch(reverse("collection-weigh", args=["TAG-H1"]), {"weightKg": 1}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(WasteCollection.objects.get(tag_code="TAG-H1").status, "pending")

    def test_issue_report_and_resolve(self):
        make_collection(self.h1, self.medical, "TAG-I")
        client = self.authenticate(self.collector)
        response = client.post(
            reverse("issues"),
            {"hospitalId": self.h1.id, "category": "segregation", "description": "Karışık atık", "tagCode": "TAG-I"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        issue_id = response.data["id"]
        self.assertIsNotNone(response.data["wasteCollectionId"])
        self.assertEqual(response.data["reportedByName"], "collector.h1")

        # collectors may not resolve
        denied = client.patch(reverse("issue-resolve", args=[issue_id]))
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)

        manager = self.authenticate(self.manager)
        resolved = manager.patch(reverse("issue-resolve", args=[issue_id]))
        self.assertEqual(resolved.status_code, status.HTTP_200_OK)
        self.assertTrue(resolved.data["isResolved"])

        open_ids = [i["id"] for i in manager.get(reverse("issues"), {"status": "open"}).data]
        resolved_ids = [i["id"] for i in manager.get(reverse("issues"), {"status": "resolved"}).data]
        self.assertNotIn(issue_id, open_ids)
        self.assertIn(issue_id, resolved_ids)

    def test_invalid_issue_category(self):
        client = self.authenticate(self.collector)
        response = client.post(
            reverse("issues"), {"hospitalId": self.h1.id, "category": "gossip", "description": "x"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "invalid_issue_category")

    def test_issue_detail_and_summary(self):
        issue = Issue.objects.create(hospital=self.h2, category="other", description="x")
        self.assertEqual(
            self.authenticate(self.collector).get(reverse("issue-detail", args=[issue.id])).status_code,
            status.HTTP_403_FORBIDDEN,
        )
        self.assertEqual(
            self.authenticate(self.hq).get(reverse("issue-detail", args=[issue.id])).status_code,
            status.HTTP_200_OK,
        )
        summary = self.authenticate(self.collector).get(reverse("issues-summary")).data
        self.assertEqual([h["code"] for h in summary["hospitals"]], ["H1"])
        self.assertEqual(summary["openCount"], 0)

    # -----------------------------------------------------------------
    # Scoped reads
    # -----------------------------------------------------------------
    def test_non_hq_dashboard_defaults_to_own_hospital(self):
        make_collection(self.h1, self.medical, "A", collected_at=local_dt(2025, 2, 1, 9), weight=2)
        make_collection(self.h2, self.medical, "B", collected_at=local_dt(2025, 2, 1, 9), weight=5)
        data = self.authenticate(self.collector).get(reverse("dashboard-summary")).data
        self.assertEqual(data["scope"]["hospitalId"], self.h1.id)
        self.assertEqual(data["totalWeight"], 2.0)
        # per-hospital breakdown stays group wide
        self.assertEqual({h["code"]: h["weight"] for h in data["byHospital"]}, {"H1": 2.0, "H2": 5.0})

    def test_non_hq_cannot_request_other_hospital(self):
        client = self.authenticate(self.collector)
        for name in ("dashboard-summary", "analytics", "collections"):
            response = client.get(reverse(name), {"hospitalId": self.h2.id})
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, name)

    def test_hq_sees_everything_or_one(self):
        make_collection(self.h1, self.medical, "A", collected_at=local_dt(2025, 2, 1, 9), weight=2)
        make_collection(self.h2, self.medical, "B", collected_at=local_dt(2025, 2, 1, 9), weight=5)
        client = self.authenticate(self.hq)
        self.assertEqual(client.get(reverse("dashboard-summary")).data["totalWeight"], 7.0)
        self.assertEqual(client.get(reverse("dashboard-summary"), {"hospitalId": "all"}).data["totalWeight"], 7.0)
        self.assertEqual(
            client.get(reverse("dashboard-summary"), {"hospitalId": self.h2.id}).data["totalWeight"], 5.0
        )
        missing = client.get(reverse("dashboard-summary"), {"hospitalId": 9999})
        self.assertEqual(missing.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(len(client.get(reverse("collections")).data), 2)

    def test_user_without_hospital_is_refused(self):
        orphan = make_user("orphan", roles=[Role.COLLECTOR])
        response = self.authenticate(orphan).get(reverse("dashboard-summary"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["error"]["code"], "no_hospital_assigned")

    def test_analytics_endpoint(self):
        make_collection(self.h1, self.medical, "A", collected_at=local_dt(2025, 2, 1, 9), weight=10)
        data = self.authenticate(self.manager).get(reverse("analytics")).data
        self.assertEqual(data["totalCost"], 150.0)
        self.assertEqual(data["kpis"]["kpiSource"], "placeholder")
        self.assertEqual(len(data["timeAnalysis"]), 24)
        self.assertEqual(
            {h["code"] for h in data["hospitalCostRanking"]["hospitals"]}, {"H1", "H2"}
        )

    def test_reference_lists(self):
        hospitals = self.authenticate(self.collector).get(reverse("hospitals")).data
        self.assertEqual([h["code"] for h in hospitals], ["H1"])
        self.assertEqual(len(self.authenticate(self.hq).get(reverse("hospitals")).data), 2)
        types = self.authenticate(self.collector).get(reverse("waste-types")).data
        self.assertEqual(types[0]["code"], "medical")
        self.assertEqual(types[0]["currentCostPerKg"], 15.0)

    # -----------------------------------------------------------------
    # Settings
    # -----------------------------------------------------------------
    def test_location_categories_are_hq_only(self):
        payload = {"code": "lab", "name": "Laboratuvar", "unit": "Test", "referenceWasteFactor": "0.8"}
        denied = self.authenticate(self.manager).post(reverse("location-categories"), payload, format="json")
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)

        client = self.authenticate(self.hq)
        created = client.post(reverse("location-categories"), payload, format="json")
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        self.assertEqual(created.data["code"], "LAB")
        duplicate = client.post(reverse("location-categories"), payload, format="json")
        self.assertEqual(duplicate.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(duplicate.data["error"]["code"], "duplicate_code")

        updated = client.patch(
            reverse("location-category-detail", args=[created.data["id"]]),
            {"referenceWasteFactor": 1.5},
            format="json",
        )
        self.assertEqual(updated.status_code, status.HTTP_200_OK)
        self.assertEqual(updated.data["referenceWasteFactor"], 1.5)
        negative = client.patch(
            reverse("location-category-detail", args=[created.data["id"]]),
            {"referenceWasteFactor": -1},
            format="json",
        )
        self.assertEqual(negative.status_code, status.HTTP_400_BAD_REQUEST)

        listed = self.authenticate(self.collector).get(reverse("location-categories"))
        self.assertEqual(listed.status_code, status.HTTP_200_OK)

    def test_manager_creates_and_deactivates_location(self):
        client = self.authenticate(self.manager)
        response = client.post(
            reverse("locations"), {"hospitalId": self.h1.id, "categoryId": self.icu.id}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["code"].startswith("H1-"))
        self.assertEqual(len(response.data["code"].split("-")), 3)

        toggled = client.patch(reverse("location-detail", args=[response.data["id"]]), {"isActive": False},
                               format="json")
        self.assertEqual(toggled.status_code, status.HTTP_200_OK)
        self.assertFalse(toggled.data["isActive"])

        missing = client.post(reverse("locations"), {"hospitalId": self.h1.id}, format="json")
        self.assertEqual(missing.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("categoryId", missing.data["error"]["message"])

        foreign = client.post(
            reverse("locations"), {"hospitalId": self.h2.id, "categoryId": self.icu.id}, format="json"
        )
        self.assertEqual(foreign.status_code, status.HTTP_403_FORBIDDEN)

        denied = self.authenticate(self.collector).post(
            reverse("locations"), {"hospitalId": self.h1.id, "categoryId": self.icu.id}, format="json"
        )
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)

    def test_coefficient_upsert_and_periods(self):
        client = self.authenticate(self.manager)
        payload = {"hospitalId": self.h1.id, "period": "2025-02", "values": [{"categoryId": self.icu.id, "value": 120}]}
        self.assertEqual(client.post(reverse("coefficients-upsert"), payload, format="json").status_code, 200)
        payload["values"][0]["value"] = 130
        response = client.post(reverse("coefficients-upsert"), payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]["value"], 130.0)
        self.assertEqual(OperationalCoefficient.objects.count(), 1)

        client.post(
            reverse("coefficients-upsert"),
            {"hospitalId": self.h1.id, "period": "2025-03", "values": [{"categoryId": self.icu.id, "value": 5}]},
            format="json",
        )
        periods = client.get(reverse("coefficient-periods", args=[self.h1.id])).data
        self.assertEqual(periods, ["2025-03", "2025-02"])
        feb = client.get(reverse("coefficients", args=[self.h1.id]), {"period": "2025-02"}).data
        self.assertEqual([c["value"] for c in feb], [130.0])

        bad = client.post(
            reverse("coefficients-upsert"),
            {"hospitalId": self.h1.id, "period": "2025-13", "values": [{"categoryId": self.icu.id, "value": 5}]},
            format="json",
        )
        self.assertEqual(bad.status_code, status.HTTP_400_BAD_REQUEST)

    def test_waste_type_cost_upsert_is_hq_only(self):
        payload = {"effectiveFrom": "2025-03-01", "costs": [{"wasteTypeId": self.medical.id, "costPerKg": "20.00"}]}
        denied = self.authenticate(self.manager).post(reverse("waste-type-costs"), payload, format="json")
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)

        client = self.authenticate(self.hq)
        response = client.post(reverse("waste-type-costs"), payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]["costPerKg"], 20.0)
        client.post(reverse("waste-type-costs"),
                    {"effectiveFrom": "2025-03-01", "costs": [{"wasteTypeId": self.medical.id, "costPerKg": "21"}]},
                    format="json")
        rows = client.get(reverse("waste-type-costs")).data
        self.assertEqual([(r["effectiveFrom"], r["costPerKg"]) for r in rows],
                         [("2025-03-01", 21.0), ("2025-01-01", 15.0)])
        self.assertEqual(rows[0]["wasteTypeCode"], "medical")
