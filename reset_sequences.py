#!/usr/bin/env python
"""
Reset PostgreSQL id sequences of the Sphere tables after loading fixtures or
restoring a dump with explicit primary keys.

Only sequence counters are touched; existing rows keep their ids.
Usage: python reset_sequences.py
"""
import os
import sys
from pathlib import Path

import django

BASE_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(BASE_DIR))
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.config.settings')
django.setup()

from django.apps import apps
from django.core.management.color import no_style
from django.db import connection

SPHERE_APP_LABELS = ['core', 'clients', 'tasks', 'timetracking', 'chat', 'wiki']


def main():
    if connection.vendor != 'postgresql':
        print(f"⚠️  Database backend is {connection.vendor}; sequences only need resetting on PostgreSQL")
        return 0

    models = []
    for label in SPHERE_APP_LABELS:
        models.extend(apps.get_app_config(label).get_models(include_auto_created=True))

    statements = connection.ops.sequence_reset_sql(no_style(), models)
    print(f"🔄 Resetting {len(statements)} sequences...")
    with connection.cursor() as cursor:
        for sql in statements:
            cursor.execute(sql)
    for model in models:
        print(f"  ✅ {model._meta.db_table}")
    print("✅ All sequences reset")
    return 0


if __name__ == '__main__':
    sys.exit(main())
