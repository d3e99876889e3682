"""
TrackCode Backend — Application Package
=======================================

What: Tracking-code allocation service for the shipment back-office.
Who:  Imported by uvicorn (trackcode.main:app), Alembic, and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Clients, Shipments)     │  ← Create/edit flows
    ├─────────────────────────────────────┤
    │   TrackingCodeAllocator + rules     │  ← Prefixes and sequences
    ├─────────────────────────────────────┤
    │         ClientStore (repository)    │  ← Atomic store operations
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    The allocator never opens its own connection. It receives a ClientStore
    bound to the caller's session, so the counter increment and the row that
    consumes the code share one transaction.
"""

__version__ = "1.0.0"
