"""InspectionRecordRow and InspectionDisputeRow models."""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_inspections.core.database import Base
from rental_inspections.models.enums import (
    DisputePhase, DisputeStatus, DisputeType, InspectionStatus, InspectionType, PaymentStatus,
)


class InspectionRecordRow(Base):
    """Persisted inspection aggregate.

    The full aggregate lives in ``snapshot``; the scalar columns mirror it for
    querying. ``version`` is the optimistic-concurrency counter every write
    is conditioned on.
    """

    __tablename__ = "inspection_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    renter_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    inspector_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    inspection_type: Mapped[InspectionType] = mapped_column(SQLEnum(InspectionType), nullable=False)
    status: Mapped[InspectionStatus] = mapped_column(
        SQLEnum(InspectionStatus),
        default=InspectionStatus.CREATED,
        nullable=False,
        index=True,
    )

    is_third_party_inspection: Mapped[bool] = mapped_column(Boolean, default=False)
    payment_status: Mapped[Optional[PaymentStatus]] = mapped_column(SQLEnum(PaymentStatus), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    snapshot: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    disputes: Mapped[list["InspectionDisputeRow"]] = relationship(
        "InspectionDisputeRow", back_populates="inspection", cascade="all, delete-orphan",
        order_by="InspectionDisputeRow.created_at",
    )


class InspectionDisputeRow(Base):
    """Index of disputes embedded in an inspection snapshot.

    Rows are inserted once and only their status fields change afterwards.
    """

    __tablename__ = "inspection_disputes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    inspection_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("inspection_records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    phase: Mapped[DisputePhase] = mapped_column(SQLEnum(DisputePhase), nullable=False)
    dispute_type: Mapped[DisputeType] = mapped_column(SQLEnum(DisputeType), nullable=False)
    status: Mapped[DisputeStatus] = mapped_column(
        SQLEnum(DisputeStatus),
        default=DisputeStatus.PENDING,
        nullable=False,
        index=True,
    )
    raised_by: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    inspection: Mapped["InspectionRecordRow"] = relationship("InspectionRecordRow", back_populates="disputes")
