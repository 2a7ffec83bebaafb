import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from auth_utils import authenticate_user, find_user_by_email, hash_password, require_password
from database import get_db
from deps_auth import get_current_user
from jwt_utils import create_user_token
from models import Comment, User
from routers.comments import remove_comment
from schemas_auth import (
    AuthOut,
    ChangePasswordIn,
    DeleteAccountIn,
    LoginIn,
    ProfileUpdateIn,
    SignupIn,
    UserOut,
)
from uploads import delete_public_files

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])

MAX_PROFILE_IMAGE_KB = 5000


def _username_taken(db: Session, username: str) -> bool:
    return db.query(User).filter(func.lower(User.username) == username.lower()).first() is not None


@auth_router.post("/signup", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
def signup(data: SignupIn, db: Session = Depends(get_db)):
    email = data.email.strip().lower()

    if find_user_by_email(db, email):
        raise HTTPException(status_code=400, detail="Email already registered")

    if _username_taken(db, data.username):
        raise HTTPException(status_code=400, detail="Username is already taken")

    user = User(
        email=email,
        username=data.username,
        password_hash=hash_password(data.password),
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        company=data.company,
    )
    db.add(user)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Email or username already registered")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Signup failed for %s", email)
        raise HTTPException(status_code=500, detail="Error creating user")

    db.refresh(user)
    logger.info("User %s signed up", user.username)
    return {"token": create_user_token(user.id), "user": user}


@auth_router.post("/login", response_model=AuthOut)
def login(data: LoginIn, db: Session = Depends(get_db)):
    user = authenticate_user(db, data.email, data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user.last_login = datetime.now(timezone.utc)
    db.add(user)
    db.commit()
    db.refresh(user)

    return {"token": create_user_token(user.id), "user": user}


@auth_router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@auth_router.get("/check-username/{username}")
def check_username(username: str, db: Session = Depends(get_db)):
    return {"available": not _username_taken(db, username)}


@auth_router.put("/me", response_model=UserOut)
def update_profile(
    data: ProfileUpdateIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if data.username and data.username != current_user.username:
        # změna jen velikosti písmen je pořád vlastní jméno
        if data.username.lower() != current_user.username.lower() and _username_taken(db, data.username):
            raise HTTPException(status_code=400, detail="Username is already taken")
        logger.info("Username change %s -> %s", current_user.username, data.username)
        current_user.username = data.username

    current_user.first_name = data.first_name.strip()
    current_user.last_name = data.last_name.strip()
    if "company" in data.model_fields_set:
        current_user.company = data.company

    if data.profile_image:
        if not data.profile_image.startswith("data:image"):
            raise HTTPException(status_code=400, detail="Invalid image format. Must be a data URL.")
        # base64 -> přibližná velikost v KB
        size_kb = round(len(data.profile_image) * 0.75 / 1024)
        if size_kb > MAX_PROFILE_IMAGE_KB:
            logger.warning("Profile image of user %s is large (~%dKB)", current_user.id, size_kb)
        current_user.profile_image = data.profile_image

    db.add(current_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Username is already taken")

    db.refresh(current_user)
    return current_user


@auth_router.put("/change-password")
def change_password(
    data: ChangePasswordIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_password(current_user, data.current_password, "Current password is incorrect")

    current_user.password_hash = hash_password(data.new_password)
    db.add(current_user)
    db.commit()
    return {"message": "Password updated successfully"}


@auth_router.delete("/delete-account")
def delete_account(
    data: DeleteAccountIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_password(current_user, data.password, "Incorrect password")

    # nejdřív hlavní komentáře (smažou i odpovědi), pak zbylé odpovědi v cizích vláknech
    top_level = (
        db.query(Comment)
        .filter(Comment.user_id == current_user.id, Comment.parent_id.is_(None))
        .all()
    )
    files = []
    for comment in top_level:
        files += remove_comment(db, comment)
    db.flush()

    for reply in db.query(Comment).filter(Comment.user_id == current_user.id).all():
        files += remove_comment(db, reply)
    db.flush()

    db.delete(current_user)
    db.commit()
    delete_public_files(files)
    logger.info("Account %s deleted", current_user.id)
    return {"message": "Account deleted successfully"}
