#!/usr/bin/env python
"""
Test runner for the storefront backend
Usage: python Doc/run_tests.py [app ...]

Without arguments every backend app is tested.
"""
import os
import sys

import django
from django.conf import settings
from django.test.utils import get_runner

APPS = [
    'backend.core',
    'backend.catalog',
    'backend.vouchers',
    'backend.cart',
    'backend.orders',
    'backend.revenue',
    'backend.media',
]

if __name__ == "__main__":
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.config.settings')
    django.setup()
    labels = [f'backend.{name}' if not name.startswith('backend.') else name for name in sys.argv[1:]] or APPS
    TestRunner = get_runner(settings)
    test_runner = TestRunner(verbosity=2)
    failures = test_runner.run_tests(labels)
    sys.exit(bool(failures))
