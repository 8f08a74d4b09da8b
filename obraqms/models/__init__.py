"""
Obra QMS
Model registry.

The shared ``db`` instance lives here; model modules import it with
``from obraqms.models import db`` and are loaded by ``create_app`` so
``db.create_all()`` and Alembic see every table.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
