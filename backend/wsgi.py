# backend/wsgi.py
from reportdesk import create_app

app = create_app()
