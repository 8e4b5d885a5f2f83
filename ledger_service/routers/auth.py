import re

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select

from ..db import get_session
from ..logger import get_logger
from ..models import User
from ..schemas import RegisterIn, TokenOut
from ..security import create_token, hash_password, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])
log = get_logger("auth")

EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

@router.post("/register", response_model=TokenOut, status_code=201)
def register(body: RegisterIn, session: Session = Depends(get_session)):
    email = body.email.strip().lower()
    if not EMAIL_REGEX.match(email):
        raise HTTPException(400, "Invalid email")
    # bcrypt only looks at the first 72 bytes
    if not 6 <= len(body.password.encode("utf-8")) <= 72:
        raise HTTPException(400, "Password must be between 6 and 72 bytes")
    if session.exec(select(User).where(User.email == email)).first():
        raise HTTPException(409, "User exists")
    user = User(email=email, name=body.name, password_hash=hash_password(body.password))
    session.add(user)
    session.commit()
    session.refresh(user)
    log.info(f"Registered user: user_id={user.id}")
    return TokenOut(access_token=create_token(user.id))

@router.post("/login", response_model=TokenOut)
def login(form: OAuth2PasswordRequestForm = Depends(), session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.email == form.username.strip().lower())).first()
    if not user or not verify_password(form.password, user.password_hash):
        log.warning("Rejected login attempt")
        raise HTTPException(401, "Invalid credentials")
    return TokenOut(access_token=create_token(user.id))
