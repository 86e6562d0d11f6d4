# backend/routes/auth.py
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas import user as schemas
from services.errors import Conflict
from utils.audit import write_log
from utils.hashing import get_password_hash, verify_password
from utils.tokenJWT import create_access_token, get_current_user

router = APIRouter(prefix="/auth", tags=["Auth"])


def _ip(request: Request):
    return request.client.host if request.client else None


# Register a new inventory owner
@router.post("/register", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
def register(payload: schemas.UserCreate, request: Request, db: Session = Depends(get_db)):
    normalized_email = payload.email.strip().lower()

    exists = db.query(User).filter(func.lower(User.email) == normalized_email).first()
    if exists:
        write_log(db, user_id=None, action="REGISTER", resource="auth", status="FAIL",
                  ip=_ip(request), meta={"email": normalized_email, "reason": "Email exists"})
        raise Conflict("Email already registered")

    user = User(email=normalized_email, password_hash=get_password_hash(payload.password), name=payload.name.strip())
    db.add(user)
    db.commit()
    db.refresh(user)

    write_log(db, user_id=user.id, action="REGISTER", resource="auth", ip=_ip(request), meta={"email": user.email})
    return user


# Authenticate user and issue JWT token
@router.post("/login", response_model=schemas.Token)
def login(payload: schemas.UserLogin, request: Request, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email.strip().lower()).first()

    if not user or not verify_password(payload.password, user.password_hash):
        write_log(db, user_id=(user.id if user else None), action="LOGIN", resource="auth",
                  status="FAIL", ip=_ip(request), meta={"email": payload.email})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token = create_access_token(data={"sub": str(user.id)})
    write_log(db, user_id=user.id, action="LOGIN", resource="auth", ip=_ip(request), meta={"email": user.email})
    return {"access_token": access_token, "token_type": "bearer"}


# Retrieve current authenticated user details
@router.get("/me", response_model=schemas.UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
