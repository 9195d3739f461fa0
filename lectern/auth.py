"""
lectern/auth.py
================
Principal checks for write operations.

Authentication happens upstream. The gateway forwards the verified user id
in the ``X-Principal-Id`` header, and this module only compares it with the
user id a request claims to act as.
"""

import logging

from lectern.errors import ForbiddenError, ValidationError
from lectern.models import Session

logger = logging.getLogger("lectern.auth")

PRINCIPAL_HEADER = "X-Principal-Id"


def verify_principal(principal_id: str | None, claimed_user_id: str | None) -> str:
    """
    Return the claimed user id once it is known to be allowed.

    Raises:
        ValidationError: No user id was claimed.
        ForbiddenError:  A verified principal is present and differs.
    """
    if not claimed_user_id:
        raise ValidationError("hostId is required")
    if principal_id and principal_id != claimed_user_id:
        logger.warning(
            "Principal %s attempted to act as %s", principal_id, claimed_user_id,
        )
        raise ForbiddenError("Principal does not match the claimed user")
    return claimed_user_id


def verify_host(session: Session, principal_id: str | None, claimed_host_id: str | None) -> None:
    """Allow the operation only for the session's own host."""
    host_id = verify_principal(principal_id, claimed_host_id)
    if session.host_id != host_id:
        logger.warning(
            "User %s is not the host of session %s", host_id, session.id,
        )
        raise ForbiddenError("Only the session host may perform this operation")
