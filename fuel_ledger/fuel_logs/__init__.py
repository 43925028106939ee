# fuel_ledger/fuel_logs/__init__.py

"""
Fuel Log Module

Keeps every vehicle's refueling history and the average consumption derived
from consecutive refuelings:
- Creating, correcting, re-dating, moving or deleting an entry re-derives
  that entry and the entries that followed it, never the whole ledger
- Rates below zero are clamped to 0, rates of 1000 or more are not stored

Architecture:
- Models: SQLAlchemy 2.x ORM models with async support
- Repository: Data access layer, including predecessor/successor lookups
- Services: Ledger maintenance with one transaction per operation
- Router: FastAPI endpoints with async handlers
- Utils: Average consumption arithmetic
"""
