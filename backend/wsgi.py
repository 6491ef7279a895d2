# backend/wsgi.py
from shopkeeper import create_app

app = create_app()
