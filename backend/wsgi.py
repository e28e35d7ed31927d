# backend/wsgi.py
from stockcycle import create_app

app = create_app()
