#!/usr/bin/env python
"""
Test runner script for the Sphere backend apps
Usage: python Doc/run_tests.py [app ...]
"""
import os
import sys
from pathlib import Path

import django
from django.conf import settings
from django.test.utils import get_runner

SPHERE_APPS = [
    'backend.core',
    'backend.clients',
    'backend.tasks',
    'backend.timetracking',
    'backend.chat',
    'backend.wiki',
    'backend.reports',
]

if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.config.settings')
    django.setup()
    labels = [f'backend.{name}' if not name.startswith('backend.') else name for name in sys.argv[1:]]
    TestRunner = get_runner(settings)
    test_runner = TestRunner(verbosity=2)
    failures = test_runner.run_tests(labels or SPHERE_APPS)
    sys.exit(bool(failures))
