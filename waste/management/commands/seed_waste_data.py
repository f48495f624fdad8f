"""
Management command to populate the database with demo data.

Idempotent: reference rows are matched on their natural codes, and
sample collections/issues are only generated when none exist yet.
"""
import random
from datetime import date, timedelta
from decimal import Decimal

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from waste.models import (
    Hospital,
    HospitalMembership,
    Issue,
    Location,
    LocationCategory,
    Role,
    User,
    WasteCollection,
    WasteType,
    WasteTypeCost,
)
from waste.services.codes import random_code, timestamp_code

DEMO_PASSWORD = '123456'
RATES_FROM = date(2025, 1, 1)

HOSPITALS = [
    ('İstinye Üniversitesi Liv Hospital Bahçeşehir', '#3b82f6'),
    ('İstinye Üniversitesi Liv Hospital Topkapı', '#8b5cf6'),
    ('İstinye Üniversitesi Medical Park Gaziosmanpaşa Hastanesi', '#10b981'),
    ('Liv Hospital Ankara', '#f59e0b'),
    ('Liv Hospital Gaziantep', '#e11d48'),
    ('Liv Hospital Samsun', '#06b6d4'),
    ('Liv Hospital Ulus', '#84cc16'),
    ('Liv Hospital Vadistanbul', '#f97316'),
    ('Medical Park Adana Hastanesi', '#ec4899'),
    ('Medical Park Ataşehir Hastanesi', '#6366f1'),
]

ROLES = [
    (Role.HQ, 'Genel Merkez - Tüm hastaneleri görür'),
    (Role.HOSPITAL_MANAGER, 'Hastane Yöneticisi - Kendi hastanesini görür'),
    (Role.COLLECTOR, 'Saha Personeli - Atık toplama işlemleri'),
]

WASTE_TYPES = [
    ('medical', 'Tıbbi Atık', '#e11d48', Decimal('15.00')),
    ('hazardous', 'Tehlikeli Atık', '#f59e0b', Decimal('25.00')),
    ('domestic', 'Evsel Atık', '#64748b', Decimal('2.00')),
    ('recycle', 'Geri Dönüşüm', '#06b6d4', Decimal('-1.00')),
]

CATEGORIES = [
    ('ICU', 'Yoğun Bakım', 'Yatış Gün', Decimal('2.5')),
    ('SERVICE', 'Hasta Servisi', 'Yatış Gün', Decimal('1.2')),
    ('OR', 'Ameliyathane', 'Ameliyat', Decimal('6.0')),
    ('POLYCLINIC', 'Poliklinik', 'Protokol', Decimal('0.3')),
    ('OFFICE', 'İdari Ofis', 'Sabit', Decimal('0.1')),
    ('OTHER', 'Diğer / Tanımsız', 'Sabit', Decimal('1.0')),
]

LOCATIONS = [
    ('AMELIYATHANE-ODA1', 'OR', 'Ana Bina 1. Kat'),
    ('AMELIYATHANE-ODA2', 'OR', 'Ana Bina 1. Kat'),
    ('ACIL-TRIYAJ', 'POLYCLINIC', 'Acil Girişi'),
    ('POLIKLINIK-KBB', 'POLYCLINIC', 'Poliklinik Blok B'),
    ('YOGUNBAKIM-YB1', 'ICU', 'Cerrahi Yoğun Bakım'),
    ('LAB-BIYOKIMYA', 'OTHER', 'Zemin Kat Laboratuvar'),
    ('OFIS-IDARI', 'OFFICE', 'Başhekimlik Katı'),
    ('SERVIS-DAHILIYE-1', 'SERVICE', '3. Kat Yataklı Servis'),
]

ISSUE_TEXTS = {
    Issue.CATEGORY_SEGREGATION: 'Tıbbi atık evsel atık poşetine atılmış',
    Issue.CATEGORY_NON_COMPLIANCE: 'Konteyner kapağı açık bırakılmış',
    Issue.CATEGORY_TECHNICAL: 'Tartı kalibrasyon hatası',
    Issue.CATEGORY_OTHER: 'Toplama saatinde gecikme',
}


class Command(BaseCommand):
    help = 'Seed roles, hospitals, demo users, waste types, rates, locations and sample activity (idempotent).'

    def add_arguments(self, parser):
        parser.add_argument('--collections', type=int, default=100, help='sample collections to generate')
        parser.add_argument('--days', type=int, default=14, help='spread sample collections over N days')
        parser.add_argument('--seed', type=int, default=None, help='random seed for reproducible samples')

    @transaction.atomic
    def handle(self, *args, **options):
        rng = random.Random(options['seed'])
        roles = self.create_roles()
        hospitals = self.create_hospitals()
        collectors = self.create_users(roles, hospitals)
        waste_types = self.create_waste_types()
        categories = self.create_categories()
        locations = self.create_locations(hospitals, categories)

        if WasteCollection.objects.exists():
            self.stdout.write('collections already present, skipping samples')
        else:
            self.create_collections(rng, hospitals, collectors, waste_types, locations,
                                    options['collections'], options['days'])
            self.create_issues(rng, hospitals, collectors)

        self.stdout.write(self.style.SUCCESS(
            f'Seeded {len(hospitals)} hospitals, {len(waste_types)} waste types, '
            f'{len(categories)} categories. Admin user: hq.admin / {DEMO_PASSWORD}'
        ))

    def create_roles(self):
        roles = {}
        for name, description in ROLES:
            roles[name], _ = Role.objects.get_or_create(name=name, defaults={'description': description})
        return roles

    def create_hospitals(self):
        hospitals = []
        for i, (name, color) in enumerate(HOSPITALS, start=1):
            hospital, _ = Hospital.objects.get_or_create(
                code=f'H{i}', defaults={'name': name, 'color_hex': color, 'is_active': True}
            )
            hospitals.append(hospital)
        return hospitals

    def _user(self, username, first_name, last_name, role_objs):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={
                'password': make_password(DEMO_PASSWORD),
                'email': f'{username}@isgmed.com',
                'first_name': first_name,
                'last_name': last_name,
            },
        )
        user.roles.add(*role_objs)
        return user

    def create_users(self, roles, hospitals):
        hq = self._user('hq.admin', 'Genel Merkez', 'Admin',
                        [roles[Role.HQ], roles[Role.HOSPITAL_MANAGER], roles[Role.COLLECTOR]])
        for hospital in hospitals:
            HospitalMembership.objects.get_or_create(
                user=hq, hospital=hospital, defaults={'is_default': hospital.code == 'H1'}
            )
        collectors = {}
        for n, hospital in enumerate(hospitals, start=1):
            manager = self._user(f'manager.h{n}', 'Manager', str(n),
                                 [roles[Role.HOSPITAL_MANAGER], roles[Role.COLLECTOR]])
            collector = self._user(f'collector.h{n}', 'Collector', str(n), [roles[Role.COLLECTOR]])
            for user in (manager, collector):
                HospitalMembership.objects.get_or_create(user=user, hospital=hospital, defaults={'is_default': True})
            collectors[hospital.id] = collector
        return collectors

    def create_waste_types(self):
        types = []
        for code, name, color, rate in WASTE_TYPES:
            wt, _ = WasteType.objects.get_or_create(
                code=code, defaults={'name': name, 'color_hex': color, 'cost_per_kg': rate}
            )
            WasteTypeCost.objects.get_or_create(
                waste_type=wt, effective_from=RATES_FROM, defaults={'cost_per_kg': rate}
            )
            types.append(wt)
        return types

    def create_categories(self):
        categories = {}
        for code, name, unit, factor in CATEGORIES:
            categories[code], _ = LocationCategory.objects.get_or_create(
                code=code, defaults={'name': name, 'unit': unit, 'reference_waste_factor': factor}
            )
        return categories

    def create_locations(self, hospitals, categories):
        by_hospital = {}
        for hospital in hospitals:
            rows = []
            for code, category_code, label in LOCATIONS:
                loc, _ = Location.objects.get_or_create(
                    hospital=hospital, code=code,
                    defaults={'category': categories[category_code], 'custom_label': label},
                )
                rows.append(loc)
            by_hospital[hospital.id] = rows
        return by_hospital

    def create_collections(self, rng, hospitals, collectors, waste_types, locations, count, days):
        now = timezone.now()
        for i in range(count):
            hospital = rng.choice(hospitals)
            collected_at = now - timedelta(days=rng.randrange(max(days, 1)),
                                           hours=rng.randrange(24), minutes=rng.randrange(60))
            completed = rng.random() > 0.3
            WasteCollection.objects.create(
                hospital=hospital,
                location=rng.choice(locations[hospital.id]),
                waste_type=rng.choice(waste_types),
                tag_code=f'TAG-{timestamp_code()}{random_code(4)}{i}',
                collected_by=collectors[hospital.id],
                collected_at=collected_at,
                status=WasteCollection.STATUS_COMPLETED if completed else WasteCollection.STATUS_PENDING,
                weight_kg=Decimal(f'{rng.uniform(1, 21):.3f}') if completed else None,
                weighed_at=collected_at + timedelta(minutes=rng.randrange(5, 45)) if completed else None,
                is_manual_weight=True,
            )
        self.stdout.write(f'created {count} sample collections')

    def create_issues(self, rng, hospitals, collectors):
        for hospital in hospitals[:5]:
            for category in rng.sample(Issue.CATEGORIES, 2):
                Issue.objects.create(
                    hospital=hospital,
                    category=category,
                    description=ISSUE_TEXTS[category],
                    reported_by=collectors[hospital.id],
                )
