import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.auth.dependencies import get_current_user
from scheduler.auth.tokens import issue_token, verify_password
from scheduler.database import get_db
from scheduler.models.user import User
from scheduler.routes.common import database_unavailable

router = APIRouter(tags=['sessions'])

logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    email: str
    password: str


class SessionResponse(BaseModel):
    token: str
    token_type: str = 'bearer'
    user_id: str


@router.post('', response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    email = data.email.strip().lower()
    if not email or not data.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email and password are required')

    try:
        user = db.query(User).filter(User.email == email).first()
        if user is None or not verify_password(user.hashed_password, data.password):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid credentials')

        user.token = issue_token()
        db.commit()
        logger.info('User %s logged in.', user.id)
        return SessionResponse(token=user.token, user_id=user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc


@router.delete('', status_code=status.HTTP_204_NO_CONTENT)
def logout(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        current_user.token = None
        db.commit()
    except SQLAlchemyError as exc:
        raise database_unavailable(db) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get('/me')
def me(current_user: User = Depends(get_current_user)):
    return {'id': current_user.id, 'email': current_user.email, 'name': current_user.name}
