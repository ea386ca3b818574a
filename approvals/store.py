from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from approvals.models import AccessGrant, Collection, PaymentRequest, utcnow


class PaymentRequestStore:
    """Payment requests and access grants, both in the payments database."""

    def __init__(self, db: Session):
        self.db = db

    def get_for_update(self, request_id: int) -> Optional[PaymentRequest]:
        # FOR UPDATE is a no-op on SQLite; the status precondition in
        # update_status still serializes concurrent actions there.
        stmt = select(PaymentRequest).where(PaymentRequest.id == request_id).with_for_update()
        return self.db.execute(stmt).scalars().first()

    def count(self) -> int:
        return self.db.scalar(select(func.count()).select_from(PaymentRequest)) or 0

    def scan(self, status: Optional[str] = None):
        """Requests newest first, each paired with its collection title."""
        stmt = (
            select(PaymentRequest, Collection.title)
            .outerjoin(Collection, Collection.id == PaymentRequest.collection_id)
            .order_by(PaymentRequest.created_at.desc(), PaymentRequest.id.desc())
        )
        if status is not None:
            stmt = stmt.where(PaymentRequest.status == status)
        return self.db.execute(stmt).all()

    def requests_for_user(self, user_id: int) -> List[PaymentRequest]:
        stmt = select(PaymentRequest).where(PaymentRequest.user_id == user_id).order_by(PaymentRequest.id)
        return list(self.db.execute(stmt).scalars())

    def update_status(self, request_id: int, expected_status: str, new_status: str,
                      remarks: Optional[str], transaction_code: Optional[str] = None) -> bool:
        """Move a request from *expected_status* to *new_status*.

        Returns False when the row no longer has *expected_status*, i.e. a
        concurrent action got there first. ``transaction_code`` is only
        written when given, so an existing code is preserved.
        """
        values = {"status": new_status, "remarks": remarks, "updated_at": utcnow()}
        if transaction_code:
            values["transaction_code"] = transaction_code
        stmt = (
            update(PaymentRequest)
            .where(PaymentRequest.id == request_id, PaymentRequest.status == expected_status)
            .values(**values)
            .execution_options(synchronize_session="evaluate")
        )
        result = self.db.execute(stmt)
        return result.rowcount == 1

    def find_grant(self, user_id: int, collection_id: int) -> Optional[AccessGrant]:
        stmt = select(AccessGrant).where(
            AccessGrant.user_id == user_id, AccessGrant.collection_id == collection_id
        )
        return self.db.execute(stmt).scalars().first()

    def grant_access(self, user_id: int, collection_id: int, granted_by: Optional[int]) -> bool:
        """Insert a grant unless one exists. Returns True when a row was added."""
        if self.find_grant(user_id, collection_id) is not None:
            return False
        self.db.add(AccessGrant(user_id=user_id, collection_id=collection_id, granted_by=granted_by))
        self.db.flush()
        return True

    def revoke_access(self, user_id: int, collection_id: int) -> int:
        """Delete the (user, collection) grant if any. Returns rows removed."""
        stmt = (
            delete(AccessGrant)
            .where(AccessGrant.user_id == user_id, AccessGrant.collection_id == collection_id)
            .execution_options(synchronize_session="evaluate")
        )
        return self.db.execute(stmt).rowcount

    def granted_collections(self, user_id: int) -> List[int]:
        stmt = select(AccessGrant.collection_id).where(AccessGrant.user_id == user_id).order_by(AccessGrant.id)
        return list(self.db.execute(stmt).scalars())

    def get_collection(self, collection_id: int) -> Optional[Collection]:
        return self.db.get(Collection, collection_id)
