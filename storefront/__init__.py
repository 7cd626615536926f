"""
Pickup Storefront

Multi-tenant online ordering backend: customers browse a tenant's menu and
submit pickup orders for a validated time slot; staff manage products,
promotions, orders and payment settings through the admin API.
"""

__version__ = "1.0.0"
