# booking_engine/models/base.py
"""Shared declarative base for all engine tables"""
from sqlalchemy.orm import declarative_base

Base = declarative_base()
