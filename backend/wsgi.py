# backend/wsgi.py
from inventory_erp import create_app

app = create_app()
