# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Optional caller identity — resolves a signed session token to a Caller, never fails."""
import time
from typing import Optional

import jwt

from gateway.core.config import settings
from gateway.core.logging import get_logger
from gateway.models.domain import Caller
from gateway.repositories.roster_repository import RosterRepository

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"


def extract_token(cookie: Optional[str], authorization: Optional[str]) -> Optional[str]:
    """Session cookie first, then the Authorization header with an optional Bearer prefix."""
    if cookie:
        return cookie
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return parts[0] if len(parts) == 1 else None


class CallerResolver:
    def __init__(self, roster_repo: RosterRepository, secret: Optional[str] = None,
                 max_age_hours: Optional[int] = None, clock=time.time):
        self._roster = roster_repo
        self._secret = settings.JWT_SECRET if secret is None else secret
        self._max_age = 3600 * (settings.JWT_MAX_AGE_HOURS if max_age_hours is None else max_age_hours)
        self._clock = clock

    def decode(self, token: str) -> Optional[dict]:
        if not self._secret:
            return None
        try:
            claims = jwt.decode(token, self._secret, algorithms=[JWT_ALGORITHM],
                                options={"require": ["iat"]})
        except jwt.InvalidTokenError as exc:
            logger.info("Ignoring invalid session token: %s", exc)
            return None
        if self._clock() - float(claims["iat"]) > self._max_age:
            logger.info("Ignoring session token older than %ds", self._max_age)
            return None
        return claims

    def resolve(self, token: Optional[str]) -> Optional[Caller]:
        """Blocking: decodes the token and looks the caller up in the roster."""
        if not token:
            return None
        claims = self.decode(token)
        email = (claims or {}).get("email")
        if not email:
            return None
        try:
            row = self._roster.find_by_email(email)
        except Exception as exc:
            logger.error("Caller lookup failed for %s: %s", email, exc)
            return None
        if not row:
            return None
        return Caller(
            id=row["id"],
            name=row.get("name") or "",
            email=row["email"],
            role_code=row.get("access") or "USER",
            registered_event_ids=row.get("reg_form") or [],
        )
