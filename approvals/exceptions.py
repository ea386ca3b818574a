"""
Exceptions raised by the approvals service
"""


class ApprovalsError(Exception):
    """Base exception for the approvals service"""
    pass


class AuthError(ApprovalsError):
    """Missing, malformed, tampered or expired credential"""
    pass


class InvalidFormat(AuthError):
    """Token is not three decodable segments or uses another algorithm"""
    pass


class SignatureMismatch(AuthError):
    """Signature does not match the header and claims"""
    pass


class Expired(AuthError):
    """Token expiry time has passed"""
    pass


class NotFound(ApprovalsError):
    """Payment request or user does not exist"""
    pass


class InvalidAction(ApprovalsError):
    """Action is not approve, reject or revoke"""
    pass


class InvalidStatusFilter(ApprovalsError):
    """Listing filter is not a request status or all"""
    pass


class StorageError(ApprovalsError):
    """Underlying store failed or rejected a write"""
    pass


class CollectionNotFound(ApprovalsError):
    """Collection does not exist"""
    pass


class NotFree(ApprovalsError):
    """Collection has a non-zero price and must be purchased"""
    pass
