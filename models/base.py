"""
Declarative base shared by every model.
Flask-SQLAlchemy is bound to it in models/__init__.py.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
