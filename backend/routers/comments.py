import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session, joinedload, selectinload

import config
from database import get_db
from deps_auth import get_current_user
from models import Comment, Product, User
from schemas import CommentOut, LikesOut
from uploads import commit_or_discard, delete_public_files, save_image_upload

logger = logging.getLogger(__name__)

comments_router = APIRouter(prefix="/api", tags=["comments"])

MAX_COMMENT_LENGTH = 1000


def _comment_out(comment: Comment) -> dict:
    likes = [u.id for u in comment.liked_by]
    return {
        "id": comment.id,
        "product_id": comment.product_id,
        "user_id": comment.user_id,
        "parent_id": comment.parent_id,
        "user": comment.user,
        "text": comment.text or "",
        "image": comment.image,
        "likes": likes,
        "likes_count": len(likes),
        "reply_count": comment.reply_count or 0,
        "created_at": comment.created_at,
        "updated_at": comment.updated_at,
    }


def _get_comment_or_404(db: Session, comment_id: int) -> Comment:
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment


def remove_comment(db: Session, comment: Comment) -> List[str]:
    """
    Smaže komentář i s odpověďmi, u odpovědi sníží reply_count rodiče.
    Vrací obrázky ke smazání; volající je maže až po commitu.
    """
    files = [comment.image]
    if comment.parent_id is not None:
        parent = db.query(Comment).filter(Comment.id == comment.parent_id).first()
        if parent is not None:
            parent.reply_count = max(0, (parent.reply_count or 0) - 1)
            db.add(parent)
    else:
        files += [reply.image for reply in comment.replies]

    db.delete(comment)
    return [f for f in files if f]


@comments_router.get("/products/{product_id}/comments", response_model=List[CommentOut])
def list_product_comments(product_id: int, db: Session = Depends(get_db)):
    comments = (
        db.query(Comment)
        .options(joinedload(Comment.user), selectinload(Comment.liked_by))
        .filter(Comment.product_id == product_id, Comment.parent_id.is_(None))
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )
    return [_comment_out(c) for c in comments]


@comments_router.get("/comments/{comment_id}/replies", response_model=List[CommentOut])
def list_replies(comment_id: int, db: Session = Depends(get_db)):
    replies = (
        db.query(Comment)
        .options(joinedload(Comment.user), selectinload(Comment.liked_by))
        .filter(Comment.parent_id == comment_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )
    return [_comment_out(r) for r in replies]


@comments_router.post(
    "/products/{product_id}/comments",
    response_model=CommentOut,
    status_code=status.HTTP_201_CREATED,
)
def create_comment(
    product_id: int,
    text: Optional[str] = Form(default=None),
    parent_id: Optional[int] = Form(default=None),
    image: Optional[UploadFile] = File(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    text = (text or "").strip()
    has_image = image is not None and bool(image.filename)

    if not text and not has_image:
        raise HTTPException(status_code=400, detail="Either comment text or image is required")
    if len(text) > MAX_COMMENT_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Comment text cannot exceed {MAX_COMMENT_LENGTH} characters",
        )

    if not db.query(Product.id).filter(Product.id == product_id).first():
        raise HTTPException(status_code=404, detail="Product not found")

    parent = None
    if parent_id is not None:
        parent = _get_comment_or_404(db, parent_id)
        if parent.product_id != product_id:
            raise HTTPException(status_code=400, detail="Parent comment belongs to another product")
        if parent.parent_id is not None:
            raise HTTPException(status_code=400, detail="Replies cannot be nested")

    image_path = save_image_upload(image, config.COMMENT_IMAGES_DIR, "comment") if has_image else None

    comment = Comment(
        product_id=product_id,
        user_id=current_user.id,
        text=text,
        image=image_path,
        parent_id=parent.id if parent else None,
    )
    db.add(comment)

    if parent is not None:
        parent.reply_count = (parent.reply_count or 0) + 1
        db.add(parent)

    commit_or_discard(db, [image_path])
    db.refresh(comment)
    logger.info("Comment %s added to product %s by user %s", comment.id, product_id, current_user.id)
    return _comment_out(comment)


@comments_router.post("/comments/{comment_id}/like", response_model=LikesOut)
def like_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    comment = _get_comment_or_404(db, comment_id)
    if any(u.id == current_user.id for u in comment.liked_by):
        raise HTTPException(status_code=400, detail="Comment already liked")

    comment.liked_by.append(current_user)
    db.commit()
    db.refresh(comment)

    likes = [u.id for u in comment.liked_by]
    return {"likes": likes, "likes_count": len(likes)}


@comments_router.delete("/comments/{comment_id}/like", response_model=LikesOut)
def unlike_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    comment = _get_comment_or_404(db, comment_id)
    comment.liked_by = [u for u in comment.liked_by if u.id != current_user.id]
    db.commit()
    db.refresh(comment)

    likes = [u.id for u in comment.liked_by]
    return {"likes": likes, "likes_count": len(likes)}


@comments_router.delete("/comments/{comment_id}")
def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    comment = _get_comment_or_404(db, comment_id)

    # autor, admin, u odpovědi navíc vlastník hlavního komentáře
    is_authorized = comment.user_id == current_user.id or current_user.role == "admin"
    if not is_authorized and comment.parent_id is not None:
        parent = db.query(Comment).filter(Comment.id == comment.parent_id).first()
        is_authorized = parent is not None and parent.user_id == current_user.id

    if not is_authorized:
        raise HTTPException(status_code=403, detail="Not authorized to delete this comment")

    files = remove_comment(db, comment)
    db.commit()
    delete_public_files(files)
    return {"message": "Comment deleted successfully"}
