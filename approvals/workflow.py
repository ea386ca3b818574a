"""Admin adjudication of payment requests.

Listing joins requests (payments database) with user details (users
database) in memory. Actions run inside one transaction on the payments
database so a status change and its access-grant side effect are committed
or rolled back together:

    pending  --approve--> approved  (+ grant)
    *        --reject-->  rejected
    approved --revoke-->  rejected  (- grant)

Source states are not enforced: admins may re-approve, or reject/revoke
from any status, to correct an earlier decision.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from approvals.directory import UserDirectory, UserProfile
from approvals.exceptions import InvalidAction, InvalidStatusFilter, NotFound, StorageError
from approvals.store import PaymentRequestStore

logger = logging.getLogger(__name__)

ACTIONS = ("approve", "reject", "revoke")
STATUS_FILTERS = ("pending", "approved", "rejected", "all")

GENERIC_FAILURE = "Failed to handle request"


@dataclass(frozen=True)
class Outcome:
    success: bool
    message: str
    reason: Optional[str] = None      # not_found | invalid_action | storage


@dataclass
class Listing:
    total_in_db: int
    filter_used: str
    data: List[Dict[str, Any]]

    @property
    def count_after_filter(self) -> int:
        return len(self.data)


def placeholder_profile(user_id) -> UserProfile:
    return UserProfile(display_name=f"Unknown User (ID: {user_id})", email="", avatar_ref=None)


def _isoformat(value):
    return value.isoformat() if value is not None else None


class PaymentWorkflow:
    def __init__(self, db: Session, users_db: Session):
        self.db = db
        self.store = PaymentRequestStore(db)
        self.directory = UserDirectory(users_db)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------
    def list(self, status_filter: str = "pending") -> Listing:
        """Requests matching *status_filter*, newest first, with user details attached."""
        if status_filter not in STATUS_FILTERS:
            raise InvalidStatusFilter(status_filter)

        total = self.store.count()
        rows = self.store.scan(None if status_filter == "all" else status_filter)
        profiles = self._profiles(request.user_id for request, _ in rows)

        data = []
        for request, collection_title in rows:
            profile = profiles.get(request.user_id) or placeholder_profile(request.user_id)
            data.append({
                "id": request.id,
                "user_id": request.user_id,
                "collection_id": request.collection_id,
                "screenshot_path": request.screenshot_path,
                "status": request.status,
                "remarks": request.remarks,
                "transaction_code": request.transaction_code,
                "ai_status": request.ai_status,
                "created_at": _isoformat(request.created_at),
                "collection_title": collection_title,
                "user_name": profile.display_name,
                "user_email": profile.email,
                "user_profile_picture": profile.avatar_ref,
            })

        # end the read snapshot so a later act() can open its own transaction
        self.db.rollback()
        self.directory.db.rollback()
        return Listing(total_in_db=total, filter_used=status_filter, data=data)

    def _profiles(self, user_ids: Iterable[int]) -> Dict[int, UserProfile]:
        ids = set(user_ids)
        try:
            profiles = self.directory.lookup_many(ids)
        except SQLAlchemyError:
            logger.warning("Batched user lookup failed, falling back to per-user lookups", exc_info=True)
            self.directory.db.rollback()
            profiles = {}
            for user_id in ids:
                try:
                    profiles[user_id] = self.directory.lookup(user_id)
                except NotFound:
                    pass
                except SQLAlchemyError:
                    logger.debug("User lookup failed for %s", user_id, exc_info=True)
                    self.directory.db.rollback()

        for user_id in ids - profiles.keys():
            logger.debug("No user record for %s, using placeholder", user_id)
        return profiles

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def act(self, request_id: int, action: str, actor_id: Optional[int],
            note: Optional[str] = None, transaction_code: Optional[str] = None) -> Outcome:
        """Apply *action* to a request; never raises, never leaves a partial change."""
        try:
            with self.db.begin():
                message = self._apply(request_id, action, actor_id, note, transaction_code)
        except NotFound:
            return Outcome(False, "Request not found", reason="not_found")
        except InvalidAction:
            logger.warning("Rejected unknown action %r on payment request %s", action, request_id)
            return Outcome(False, GENERIC_FAILURE, reason="invalid_action")
        except (StorageError, SQLAlchemyError):
            logger.exception("Rolled back %s on payment request %s", action, request_id)
            return Outcome(False, GENERIC_FAILURE, reason="storage")

        logger.info("Payment request %s: %s by admin %s", request_id, action, actor_id)
        return Outcome(True, message)

    def _apply(self, request_id, action, actor_id, note, transaction_code) -> str:
        request = self.store.get_for_update(request_id)
        if request is None:
            raise NotFound(f"payment request {request_id} not found")
        if action not in ACTIONS:
            raise InvalidAction(action)

        current = request.status
        user_id, collection_id = request.user_id, request.collection_id

        if action == "approve":
            self._transition(request_id, current, "approved", note, transaction_code)
            self.store.grant_access(user_id, collection_id, granted_by=actor_id)
            return "Payment approved and access granted"

        if action == "reject":
            self._transition(request_id, current, "rejected", note)
            return "Payment request rejected"

        self._transition(request_id, current, "rejected", note)
        self.store.revoke_access(user_id, collection_id)
        return "Access revoked successfully"

    def _transition(self, request_id, expected, new_status, note, transaction_code=None):
        if not self.store.update_status(request_id, expected, new_status, note, transaction_code):
            raise StorageError(f"payment request {request_id} changed concurrently")
