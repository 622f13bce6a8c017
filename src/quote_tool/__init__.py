"""
Quote Tool Package

A resale quotation engine for tiered software-license products.
Resolves quotes using Quantity → Tier → Unit Cost → Markup/Tax → Discount/Fee
with every amount available in a base and a display currency.
"""

__version__ = "1.0.0"
