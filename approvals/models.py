from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, Integer, Numeric, String, Text, UniqueConstraint

from approvals.database import Base, UsersBase

REQUEST_STATUSES = ("pending", "approved", "rejected")
AI_STATUSES = ("pending", "verified", "failed")


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PaymentRequest(Base):
    __tablename__ = "payment_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)         # users.id in the users database
    collection_id = Column(Integer, nullable=False)
    screenshot_path = Column(String(512), nullable=False)
    status = Column(Enum(*REQUEST_STATUSES, name="payment_request_status"),
                    nullable=False, default="pending")
    transaction_code = Column(String(255), unique=True, nullable=True)
    ai_status = Column(Enum(*AI_STATUSES, name="payment_ai_status"), default="pending")
    ai_response = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class AccessGrant(Base):
    __tablename__ = "user_series_access"
    __table_args__ = (UniqueConstraint("user_id", "collection_id", name="user_col"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False)
    collection_id = Column(Integer, nullable=False)
    granted_by = Column(Integer, nullable=True)                   # null for free enrolment
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Collection(Base):
    __tablename__ = "test_series_collections"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    discount_price = Column(Numeric(10, 2), nullable=True)

    @property
    def effective_price(self):
        return self.discount_price if self.discount_price is not None else self.price


class User(UsersBase):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, nullable=False)
    profile_picture = Column(String(512), nullable=True)
    password = Column(String(255), nullable=True)                 # bcrypt hash
    role = Column(String(32), nullable=False, default="student")
