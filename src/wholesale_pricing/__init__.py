"""
Wholesale Pricing Package

Tenant-scoped pricing resolution for B2B orders.
Resolves quantity tiers, stacks territory/group/payment-terms discounts and
appends tax, plus policy-driven release channel advancement.
"""

__version__ = "1.0.0"
