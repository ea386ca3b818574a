from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from approvals.access import StudentAccess
from approvals.auth import authenticator, require_admin, verify_password, verify_token
from approvals.database import SessionLocal, UsersSessionLocal
from approvals.directory import UserDirectory
from approvals.exceptions import CollectionNotFound, InvalidStatusFilter, NotFree
from approvals.settings import settings
from approvals.workflow import PaymentWorkflow

router = APIRouter()


class LoginRequest(BaseModel):
    email: str
    password: str


class EnrollRequest(BaseModel):
    collection_id: int = 0


@router.post("/admin/login")
def admin_login(request: LoginRequest):
    users_db = UsersSessionLocal()
    try:
        user = UserDirectory(users_db).find_by_email(request.email)
        if user is None or not verify_password(request.password, user.password):
            return {"success": False, "message": "Invalid credentials"}
        if user.role != "admin":
            return {"success": False, "message": "Access denied. Admin privileges required."}
        token = authenticator.issue(
            {"user_id": user.id, "email": user.email, "role": user.role},
            settings.token_ttl_seconds,
        )
        return {
            "success": True,
            "message": "Login successful",
            "user": {"id": user.id, "name": user.name, "email": user.email, "role": user.role},
            "token": token,
        }
    finally:
        users_db.close()


@router.get("/admin/payment/requests")
def list_payment_requests(status: str = "pending", admin=Depends(require_admin)):
    db = SessionLocal()
    users_db = UsersSessionLocal()
    try:
        listing = PaymentWorkflow(db, users_db).list(status)
    except InvalidStatusFilter:
        raise HTTPException(status_code=400, detail="Invalid status filter")
    finally:
        db.close()
        users_db.close()

    return {
        "success": True,
        "total_in_db": listing.total_in_db,
        "filter_used": listing.filter_used,
        "count_after_filter": listing.count_after_filter,
        "data": listing.data,
    }


@router.post("/admin/payment/handle")
def handle_payment_request(
    request_id: Optional[int] = Form(None),
    action: str = Form(""),
    note: str = Form(""),
    transaction_code: Optional[str] = Form(None),
    admin=Depends(require_admin)
):
    if not request_id or not action:
        return {"success": False, "message": "Request ID and action are required"}

    db = SessionLocal()
    users_db = UsersSessionLocal()
    try:
        outcome = PaymentWorkflow(db, users_db).act(
            request_id, action, admin.subject_id,
            note=note, transaction_code=transaction_code or None
        )
    finally:
        db.close()
        users_db.close()

    body = {"success": outcome.success, "message": outcome.message}
    if outcome.reason == "not_found":
        return JSONResponse(status_code=404, content=body)
    return body


@router.get("/payment/access")
def check_access(identity=Depends(verify_token)):
    db = SessionLocal()
    try:
        summary = StudentAccess(db).summary(identity.subject_id)
    finally:
        db.close()
    return {"success": True, **summary}


@router.post("/payment/enroll-free")
def enroll_free(request: EnrollRequest, identity=Depends(verify_token)):
    if request.collection_id <= 0:
        return {"success": False, "message": "Invalid collection ID"}

    db = SessionLocal()
    try:
        created = StudentAccess(db).enroll_free(identity.subject_id, request.collection_id)
    except CollectionNotFound:
        return {"success": False, "message": "Collection not found"}
    except NotFree:
        return {"success": False, "message": "This collection is not free. Purchase required."}
    finally:
        db.close()

    if not created:
        return {"success": True, "message": "Success! You already have access."}
    return {"success": True, "message": "Enrollment successful! You can now start the exams."}
