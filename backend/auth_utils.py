from typing import Optional

from fastapi import HTTPException
from passlib.context import CryptContext
from sqlalchemy import func
from sqlalchemy.orm import Session

from models import User

# bcrypt_sha256 pro nové hashe, čistý bcrypt jen kvůli ověření starších účtů
pwd_context = CryptContext(schemes=["bcrypt_sha256", "bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = find_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def require_password(user: User, password: str, detail: str) -> None:
    """Potvrzení citlivé akce heslem (změna hesla, smazání účtu)."""
    if not verify_password(password, user.password_hash):
        raise HTTPException(status_code=401, detail=detail)
