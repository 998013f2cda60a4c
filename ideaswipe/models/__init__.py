"""
Idea Swipe
SQLAlchemy extension instance shared by every model module.

Usage:
    from ideaswipe.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
