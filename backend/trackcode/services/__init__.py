# Services package init
"""
TrackCode Backend — Services Layer
=====================================

What:  Business logic between the routes (HTTP) and the database.
How:   Stateless services receive the request's AsyncSession on every call
       and never commit; get_db_session owns the transaction boundary.

Service Inventory:
    - prefix: pure rules (derive_base_prefix, candidate_prefixes,
      validate_prefix_format, format_tracking_code)
    - ClientStore: the handful of statements the allocator needs
    - TrackingCodeAllocator: prefix availability, unique prefix allocation
      and atomic tracking-code issuance on top of a ClientStore
    - ClientService: client creation, prefix edits, helpers and backfill
    - ShipmentService: shipment creation, the consumer of tracking codes
"""
