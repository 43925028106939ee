# fuel_ledger/__init__.py

"""
Fuel Consumption Ledger service.
"""
