"""
Workspace Insights — SQLAlchemy models.

The tables stand in for the document store that owns workspace data.
The aggregation pipeline only ever reads them.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
