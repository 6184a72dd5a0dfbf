"""Opportunistic client account creation for bookings made by unknown emails."""

import logging
import secrets
import string
from dataclasses import dataclass
from typing import Protocol

from lawbook.models.user import ROLE_CLIENT

logger = logging.getLogger(__name__)

PASSWORD_ALPHABET = string.ascii_letters + string.digits
PASSWORD_LENGTH = 8


class IdentityService(Protocol):
    def exists(self, email: str) -> bool: ...

    def sign_up(self, email: str, password: str, full_name: str, phone: str | None = None, role: str = ROLE_CLIENT): ...

    def sign_out(self, session) -> None: ...


@dataclass(frozen=True)
class ProvisionResult:
    created: bool
    temporary_password: str | None = None


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    return ''.join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


class AccountProvisioner:
    def __init__(self, identity: IdentityService):
        self.identity = identity

    def ensure_account(self, email: str, name: str, phone: str | None) -> ProvisionResult:
        """Create a client login for ``email`` unless one already exists.

        The generated password is only ever returned here, so the caller can
        show it once. Any failure is logged and reported as ``created=False``;
        the booking that triggered it goes ahead regardless.
        """
        try:
            if self.identity.exists(email):
                return ProvisionResult(created=False)

            password = generate_password()
            session = self.identity.sign_up(email, password, full_name=name, phone=phone, role=ROLE_CLIENT)
        except Exception:
            logger.warning('Could not provision a client account for %s', email, exc_info=True)
            return ProvisionResult(created=False)

        try:
            self.identity.sign_out(session)
        except Exception:
            logger.warning('Could not sign out the new session for %s', email, exc_info=True)

        logger.info('Provisioned client account for %s', email)
        return ProvisionResult(created=True, temporary_password=password)
