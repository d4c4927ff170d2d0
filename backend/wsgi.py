# backend/wsgi.py
from shiftsync import create_app

app = create_app()
