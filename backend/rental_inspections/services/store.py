"""Inspection store: persistence contract and SQLAlchemy implementation."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rental_inspections.core.errors import Conflict
from rental_inspections.models.enums import DisputeStatus
from rental_inspections.models.inspection import InspectionDisputeRow, InspectionRecordRow
from rental_inspections.schemas.dispute import Dispute
from rental_inspections.schemas.inspection import InspectionRecord

logger = logging.getLogger(__name__)

# Derived flags are recomputed on load and never persisted
_DERIVED_FIELDS = {
    "version",
    "renter_pre_review_accepted",
    "renter_discrepancy_reported",
    "renter_post_inspection_confirmed",
    "owner_post_review_accepted",
    "owner_dispute_raised",
}


class InspectionStore(ABC):
    """Persistence contract for inspection records.

    ``save`` must be atomic and conditioned on ``expected_version``; a
    mismatch raises ``Conflict`` and writes nothing.
    """

    @abstractmethod
    async def create(self, record: InspectionRecord) -> InspectionRecord:
        pass

    @abstractmethod
    async def get(self, inspection_id: UUID) -> Optional[InspectionRecord]:
        pass

    @abstractmethod
    async def get_by_dispute(self, dispute_id: UUID) -> Optional[InspectionRecord]:
        pass

    @abstractmethod
    async def list_disputes(self, status: Optional[DisputeStatus] = None) -> list[Dispute]:
        pass

    @abstractmethod
    async def save(self, record: InspectionRecord, expected_version: int) -> InspectionRecord:
        """Persist ``record`` and return it with its new version."""
        pass


def _snapshot(record: InspectionRecord) -> dict[str, Any]:
    return record.model_dump(mode="json", exclude=_DERIVED_FIELDS)


def _from_snapshot(snapshot: dict[str, Any], version: int) -> InspectionRecord:
    return InspectionRecord.model_validate({**snapshot, "version": version})


def _row_values(record: InspectionRecord) -> dict[str, Any]:
    return {
        "booking_id": record.booking_id,
        "product_id": record.product_id,
        "owner_id": record.owner_id,
        "renter_id": record.renter_id,
        "inspector_id": record.inspector_id,
        "inspection_type": record.inspection_type,
        "status": record.status,
        "is_third_party_inspection": record.is_third_party_inspection,
        "payment_status": record.payment_status,
        "snapshot": _snapshot(record),
        "updated_at": record.updated_at or record.created_at,
    }


def _dispute_values(dispute: Dispute) -> dict[str, Any]:
    return {
        "id": dispute.id,
        "inspection_id": dispute.inspection_id,
        "phase": dispute.phase,
        "dispute_type": dispute.dispute_type,
        "status": dispute.status,
        "raised_by": dispute.raised_by,
        "created_at": dispute.created_at,
        "resolved_at": dispute.resolved_at,
    }


class SQLAlchemyInspectionStore(InspectionStore):
    """Stores the aggregate as a JSON snapshot with queryable mirror columns."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, record: InspectionRecord) -> InspectionRecord:
        created = record.model_copy(update={"version": 1})
        self.db.add(InspectionRecordRow(
            id=created.id,
            version=1,
            created_at=created.created_at,
            **_row_values(created),
        ))
        for dispute in created.disputes:
            self.db.add(InspectionDisputeRow(**_dispute_values(dispute)))
        await self.db.commit()
        logger.info(f"[STORE] Created inspection {created.id}")
        return created

    async def get(self, inspection_id: UUID) -> Optional[InspectionRecord]:
        # Columns rather than entities so that a concurrent write is never
        # masked by the session identity map.
        result = await self.db.execute(
            select(InspectionRecordRow.snapshot, InspectionRecordRow.version)
            .where(InspectionRecordRow.id == inspection_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return _from_snapshot(row.snapshot, row.version)

    async def get_by_dispute(self, dispute_id: UUID) -> Optional[InspectionRecord]:
        result = await self.db.execute(
            select(InspectionDisputeRow.inspection_id).where(InspectionDisputeRow.id == dispute_id)
        )
        inspection_id = result.scalar_one_or_none()
        if inspection_id is None:
            return None
        return await self.get(inspection_id)

    async def list_disputes(self, status: Optional[DisputeStatus] = None) -> list[Dispute]:
        query = select(InspectionDisputeRow.id, InspectionDisputeRow.inspection_id).order_by(
            InspectionDisputeRow.created_at
        )
        if status is not None:
            query = query.where(InspectionDisputeRow.status == status)
        rows = (await self.db.execute(query)).all()

        records: dict[UUID, InspectionRecord] = {}
        disputes: list[Dispute] = []
        for row in rows:
            if row.inspection_id not in records:
                record = await self.get(row.inspection_id)
                if record is None:
                    continue
                records[row.inspection_id] = record
            dispute = records[row.inspection_id].get_dispute(row.id)
            if dispute is not None:
                disputes.append(dispute)
        return disputes

    async def save(self, record: InspectionRecord, expected_version: int) -> InspectionRecord:
        new_version = expected_version + 1
        result = await self.db.execute(
            update(InspectionRecordRow)
            .where(
                InspectionRecordRow.id == record.id,
                InspectionRecordRow.version == expected_version,
            )
            .values(version=new_version, **_row_values(record))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            logger.warning(
                f"[STORE] Version conflict on inspection {record.id} (expected {expected_version})"
            )
            raise Conflict(
                "Inspection was modified concurrently",
                expected_version=expected_version,
            )

        await self._sync_disputes(record)
        await self.db.commit()
        return record.model_copy(update={"version": new_version})

    async def _sync_disputes(self, record: InspectionRecord) -> None:
        if not record.disputes:
            return
        result = await self.db.execute(
            select(InspectionDisputeRow.id).where(InspectionDisputeRow.inspection_id == record.id)
        )
        known = set(result.scalars().all())
        for dispute in record.disputes:
            if dispute.id in known:
                await self.db.execute(
                    update(InspectionDisputeRow)
                    .where(InspectionDisputeRow.id == dispute.id)
                    .values(status=dispute.status, resolved_at=dispute.resolved_at)
                    .execution_options(synchronize_session=False)
                )
            else:
                await self.db.execute(insert(InspectionDisputeRow).values(**_dispute_values(dispute)))
