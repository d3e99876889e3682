"""
TrackCode Backend — Client SQLAlchemy Model
=============================================

What:  ORM model for the `clients` table (allocation-relevant columns).
Who:   Written by ClientService, read and incremented by ClientStore.

Column Rationale:
    - prefix: namespace of the client's tracking codes. UNIQUE at the store
      level; that constraint, not the application pre-check, is what decides
      who owns a prefix when two requests race for it. Nullable until a
      prefix is assigned (legacy rows, see backfill).
    - last_sequence: last issued sequence number. Only ever changed by the
      single-statement increment in ClientStore.increment_sequence.
"""

from datetime import datetime, timezone
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trackcode.database import Base

if TYPE_CHECKING:
    from trackcode.models.shipment import Shipment


class Client(Base):
    """
    A shipping client of the back-office.

    Lifecycle:
        1. Created with a prefix (auto-derived or manual), last_sequence = 0
        2. Each issued tracking code bumps last_sequence by exactly one
        3. The prefix may be changed by an explicit edit; codes already
           issued keep the old prefix and the counter keeps counting
    """

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Company display name, seed for prefix derivation",
    )

    prefix: Mapped[Optional[str]] = mapped_column(
        String(10),
        nullable=True,
        comment="Tracking-code prefix, 2-10 chars of [A-Z0-9]",
    )

    last_sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="Last issued tracking sequence number",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    shipments: Mapped[List["Shipment"]] = relationship(
        back_populates="client",
        lazy="raise",
    )

    __table_args__ = (
        UniqueConstraint("prefix", name="uq_clients_prefix"),
        CheckConstraint("last_sequence >= 0", name="ck_clients_last_sequence_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Client(id={self.id}, prefix='{self.prefix}', "
            f"last_sequence={self.last_sequence})>"
        )
