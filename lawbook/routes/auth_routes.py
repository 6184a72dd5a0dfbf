from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from lawbook.auth.dependencies import get_current_user
from lawbook.auth.identity import DatabaseIdentityService
from lawbook.errors import UpstreamError
from lawbook.models.user import User
from lawbook.routes.common import get_db, to_http_exception

router = APIRouter(tags=['auth'])


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Email is required.')
        return normalized


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'
    role: str


class CurrentUserResponse(BaseModel):
    id: str
    email: str
    role: str
    full_name: str
    phone: str | None = None


@router.post('/login', response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    try:
        session = DatabaseIdentityService(db).sign_in(data.email, data.password)
    except UpstreamError as exc:
        raise to_http_exception(exc) from exc

    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Invalid email or password.',
        )
    return TokenResponse(access_token=session.access_token, role=session.role)


@router.get('/me', response_model=CurrentUserResponse)
def me(current_user: User = Depends(get_current_user)):
    return CurrentUserResponse(
        id=current_user.id,
        email=current_user.email,
        role=current_user.role,
        full_name=current_user.full_name or '',
        phone=current_user.phone,
    )
