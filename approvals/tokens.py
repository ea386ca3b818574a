"""HS256 bearer tokens for admins and students.

Tokens are three URL-safe base64 segments (header, claims, signature). The
claims carry ``user_id``, ``role``, ``iat`` and ``exp``; signing and the
constant-time signature check are done by python-jose.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from jose import jws, jwt
from jose.exceptions import JWSError

from approvals.exceptions import Expired, InvalidFormat, SignatureMismatch

ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    subject_id: Optional[int]
    role: Optional[str]
    issued_at: Optional[int]
    expires_at: int
    claims: Dict[str, Any] = field(default_factory=dict)


class TokenAuthenticator:
    def __init__(self, secret: str, clock: Callable[[], float] = time.time):
        if not secret:
            raise ValueError("signing secret must not be empty")
        self._secret = secret
        self._clock = clock

    def issue(self, payload: Dict[str, Any], ttl: int) -> str:
        """Sign *payload* with ``iat`` set to now and ``exp`` to now + *ttl* seconds."""
        now = int(self._clock())
        claims = dict(payload)
        claims["iat"] = now
        claims["exp"] = now + int(ttl)
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, credential: Optional[str]) -> Identity:
        """Return the caller identity or raise an :class:`AuthError` subclass.

        Raises:
            InvalidFormat: not three segments, undecodable, or wrong algorithm.
            SignatureMismatch: signature does not match the signing input.
            Expired: ``exp`` is at or before the current time.
        """
        if not credential or credential.count(".") != 2:
            raise InvalidFormat("token must have three segments")

        try:
            header = jws.get_unverified_header(credential)
            raw_claims = jws.get_unverified_claims(credential)
        except JWSError as exc:
            raise InvalidFormat(str(exc)) from exc

        if header.get("alg") != ALGORITHM:
            raise InvalidFormat("unsupported signing algorithm")

        try:
            jws.verify(credential, self._secret, algorithms=[ALGORITHM])
        except JWSError as exc:
            raise SignatureMismatch("signature verification failed") from exc

        try:
            claims = json.loads(raw_claims)
        except ValueError as exc:
            raise InvalidFormat("claims are not valid JSON") from exc
        if not isinstance(claims, dict):
            raise InvalidFormat("claims must be a JSON object")

        expires_at = claims.get("exp")
        if not isinstance(expires_at, (int, float)):
            raise InvalidFormat("token has no expiry")
        if self._clock() >= expires_at:
            raise Expired("token expired")

        return Identity(
            subject_id=claims.get("user_id"),
            role=claims.get("role"),
            issued_at=claims.get("iat"),
            expires_at=int(expires_at),
            claims=claims,
        )
