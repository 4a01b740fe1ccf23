# backend/wsgi.py
from stationops import create_app

app = create_app()
