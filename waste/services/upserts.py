"""
Insert-or-update of rows keyed by a unique constraint.

Backends that can name the conflict target (PostgreSQL, SQLite) get a
single ``INSERT ... ON CONFLICT DO UPDATE``.  MySQL cannot, so there
each row goes through ``update_or_create``; the unique constraint still
keeps concurrent writers from creating duplicates.
"""
from __future__ import annotations

from django.db import connections, router, transaction


def upsert(model, rows: list, *, unique_fields: list[str], update_fields: list[str]) -> None:
    using = router.db_for_write(model)
    with transaction.atomic(using=using):
        if connections[using].features.supports_update_conflicts_with_target:
            model.objects.using(using).bulk_create(
                rows, update_conflicts=True, unique_fields=unique_fields, update_fields=update_fields,
            )
            return
        opts = model._meta
        for row in rows:
            lookup = {opts.get_field(name).attname: getattr(row, opts.get_field(name).attname)
                      for name in unique_fields}
            # auto_now columns refresh on save
            defaults = {name: getattr(row, name) for name in update_fields
                        if not getattr(opts.get_field(name), 'auto_now', False)}
            model.objects.using(using).update_or_create(defaults=defaults, **lookup)
