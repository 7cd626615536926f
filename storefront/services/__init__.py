"""
                        Services Module

Business logic behind the HTTP routes. Provider-backed services have a
development implementation and a real one selected by ENV_MODE.

Services:
    - scheduling: Opening hours and pickup slot generation
    - tenancy: Tenant slug resolution
    - access: Admin access authorization
    - membership: Business member lookups and access logging
    - identity: Access token verification
    - promotions: Best-discount selection
    - payment: Stripe payment intents and webhooks
"""
