"""Database-backed identity service: accounts, passwords and sessions."""

import logging
from dataclasses import dataclass

from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from lawbook.auth import jwt_handler
from lawbook.errors import ConflictError, UpstreamError
from lawbook.models.user import ROLE_CLIENT, User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


@dataclass(frozen=True)
class IdentitySession:
    user_id: str
    email: str
    role: str
    access_token: str


class DatabaseIdentityService:
    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> User | None:
        try:
            return self.db.query(User).filter(User.email == normalize_email(email)).first()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise UpstreamError("Identity lookup failed") from exc

    def exists(self, email: str) -> bool:
        return self.find_by_email(email) is not None

    def sign_up(
        self,
        email: str,
        password: str,
        full_name: str,
        phone: str | None = None,
        role: str = ROLE_CLIENT,
    ) -> IdentitySession:
        user = User(
            email=normalize_email(email),
            hashed_password=hash_password(password),
            role=role,
            full_name=full_name,
            phone=phone,
        )
        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(f"{user.email} is already registered") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise UpstreamError("Account creation failed") from exc

        return self._open_session(user)

    def sign_in(self, email: str, password: str) -> IdentitySession | None:
        user = self.find_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            return None
        return self._open_session(user)

    def sign_out(self, session: IdentitySession) -> None:
        jwt_handler.revoke_access_token(session.access_token)
        logger.debug("Signed out session for user %s", session.user_id)

    def _open_session(self, user: User) -> IdentitySession:
        return IdentitySession(
            user_id=user.id,
            email=user.email,
            role=user.role,
            access_token=jwt_handler.create_access_token(subject=user.email, role=user.role),
        )
