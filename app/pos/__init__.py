"""
app/pos/__init__.py
-------------------
Checkout screen blueprint (keyboard dispatch, scanner, held tickets).
URL prefix: /pos
"""
from flask import Blueprint

pos = Blueprint('pos', __name__)

from app.pos import routes  # noqa: E402, F401
