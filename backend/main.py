"""ASGI entry point (`uvicorn main:app`); server.py builds its own app for the managed process."""
from application import create_app
from db import Database
from server import configure_logging

configure_logging()

app = create_app(Database.from_config())
