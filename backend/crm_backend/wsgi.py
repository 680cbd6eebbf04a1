"""WSGI config for the CRM engagement backend."""
import os
from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'crm_backend.settings')
application = get_wsgi_application()
