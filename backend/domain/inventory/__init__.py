"""
Inventory Domain - stock levels, alerts and replenishment.
"""
