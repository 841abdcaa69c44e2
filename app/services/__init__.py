"""
                        Services Module

Business logic for the order intake system. Pluggable collaborators follow
the hybrid pattern: an abstract base, a development implementation and a
production implementation picked by a cached factory.

Services:
    - order_intake: checkout validation, pricing and persistence
    - pricing: catalog-authoritative price and total derivation
    - order_store: database access for catalog, tables, customers, orders
    - order_workflow: kitchen queue, status transitions, tracking, payments
    - rate_limit: per-phone order limits (memory or Redis)
    - notifications: kitchen WhatsApp relay (mock or Twilio)
"""
