import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import get_db
from deps_auth import get_current_user
from models import Product, User
from schemas import AnyProductOut, to_product_out

logger = logging.getLogger(__name__)

saved_products_router = APIRouter(prefix="/api/saved-products", tags=["saved-products"])


def _is_saved(user: User, product_id: int) -> bool:
    return any(p.id == product_id for p in user.saved_products)


@saved_products_router.get("", response_model=List[AnyProductOut])
def list_saved_products(current_user: User = Depends(get_current_user)):
    return [to_product_out(p) for p in current_user.saved_products]


@saved_products_router.post("/{product_id}", status_code=status.HTTP_201_CREATED)
def save_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    if _is_saved(current_user, product_id):
        raise HTTPException(status_code=400, detail="Product already saved")

    current_user.saved_products.append(product)
    db.commit()
    logger.info("User %s saved product %s", current_user.id, product_id)
    return {"message": "Product saved successfully"}


@saved_products_router.delete("/{product_id}")
def remove_saved_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not _is_saved(current_user, product_id):
        raise HTTPException(status_code=404, detail="Product not found in saved products")

    current_user.saved_products = [p for p in current_user.saved_products if p.id != product_id]
    db.commit()
    return {"message": "Product removed from saved products"}


@saved_products_router.get("/check/{product_id}")
def check_saved_product(product_id: int, current_user: User = Depends(get_current_user)):
    return {"is_saved": _is_saved(current_user, product_id)}
