import logging
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from approvals.exceptions import CollectionNotFound, NotFree
from approvals.store import PaymentRequestStore

logger = logging.getLogger(__name__)


class StudentAccess:
    """What a student can open, and self-enrolment in free collections."""

    def __init__(self, db: Session):
        self.db = db
        self.store = PaymentRequestStore(db)

    def summary(self, user_id: int) -> Dict[str, Any]:
        requests = self.store.requests_for_user(user_id)
        return {
            "data": self.store.granted_collections(user_id),
            "pending": [r.collection_id for r in requests if r.status == "pending"],
            "requests_detail": [
                {"user_id": user_id, "collection_id": r.collection_id, "status": r.status}
                for r in requests
            ],
            "user_id": user_id,
        }

    def enroll_free(self, user_id: int, collection_id: int) -> bool:
        """Grant access to a zero-priced collection. Returns False if already granted."""
        collection = self.store.get_collection(collection_id)
        if collection is None:
            raise CollectionNotFound(f"collection {collection_id} not found")
        if (collection.effective_price or 0) > 0:
            raise NotFree(f"collection {collection_id} is not free")

        try:
            created = self.store.grant_access(user_id, collection_id, granted_by=None)
            self.db.commit()
        except IntegrityError:
            # a concurrent enrolment inserted the same (user, collection) pair
            self.db.rollback()
            logger.info("User %s already enrolled in collection %s", user_id, collection_id)
            return False
        if created:
            logger.info("User %s enrolled in free collection %s", user_id, collection_id)
        return created
