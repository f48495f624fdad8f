# waste/management/commands/ensure_test_users.py
from django.core.management.base import BaseCommand, CommandError
from django.contrib.auth.hashers import make_password

from waste.models import Hospital, HospitalMembership, Role, User

TEST_SET = [
    ("hq.admin", [Role.HQ, Role.HOSPITAL_MANAGER, Role.COLLECTOR], "H1"),
    ("manager.h1", [Role.HOSPITAL_MANAGER, Role.COLLECTOR], "H1"),
    ("collector.h1", [Role.COLLECTOR], "H1"),
]


class Command(BaseCommand):
    help = "Ensure demo users exist with password=123456, their roles and default hospital (idempotent)."

    def handle(self, *args, **opts):
        for username, role_names, hospital_code in TEST_SET:
            hospital = Hospital.objects.filter(code=hospital_code).first()
            if hospital is None:
                raise CommandError(f"hospital {hospital_code} missing; run seed_waste_data first")
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"password": make_password("123456"), "is_active": True},
            )
            if not created:
                u.password = make_password("123456")
                u.is_active = True
                u.save(update_fields=["password", "is_active"])
            roles = [Role.objects.get_or_create(name=name)[0] for name in role_names]
            u.roles.set(roles)
            HospitalMembership.objects.update_or_create(user=u, hospital=hospital, defaults={"is_default": True})
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({', '.join(role_names)})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
