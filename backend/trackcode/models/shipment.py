"""
TrackCode Backend — Shipment SQLAlchemy Model
===============================================

What:  ORM model for the `shipments` table, the consumer of tracking codes.
Why:   A shipment row is where an issued code is stored. The unique
       constraint on tracking_code is a second line of defence behind the
       per-client counter.
"""

from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trackcode.database import Base

if TYPE_CHECKING:
    from trackcode.models.client import Client


class Shipment(Base):
    """A shipment with its immutable tracking code."""

    __tablename__ = "shipments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    client_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # {prefix}-{sequence}; never rewritten after insert
    tracking_code: Mapped[str] = mapped_column(String(50), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    origin: Mapped[str] = mapped_column(String(255), nullable=False)
    destination: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    client: Mapped["Client"] = relationship(back_populates="shipments", lazy="raise")

    __table_args__ = (
        UniqueConstraint("tracking_code", name="uq_shipments_tracking_code"),
        Index("idx_shipments_client_id", "client_id"),
    )

    def __repr__(self) -> str:
        return f"<Shipment(id={self.id}, tracking_code='{self.tracking_code}')>"
