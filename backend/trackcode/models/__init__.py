"""
TrackCode Backend — ORM Models
================================

Importing this package registers every table on Base.metadata, which is
what Alembic autogenerate and the test schema fixture rely on.
"""

from trackcode.models.client import Client
from trackcode.models.shipment import Shipment

__all__ = ["Client", "Shipment"]
