"""
WSGI config for clothing_swap_marketplace project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clothing_swap_marketplace.settings')

application = get_wsgi_application()
