"""
                Restaurant Order Intake

Checkout backend for a restaurant ordering app: server-side price and total
verification, per-phone rate limiting, order persistence and a WhatsApp
kitchen relay, with hybrid Mock/Real service architecture.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
