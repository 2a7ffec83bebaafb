import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import config
from database import get_db
from deps_auth import require_admin
from errors import ValidationFailed, field_messages
from models import PRODUCT_MODELS, Product, User
from schemas import (
    CATEGORIES,
    CREATE_SCHEMAS,
    AnyProductOut,
    CategoryBrands,
    ProductListResponse,
    to_product_out,
)
from uploads import commit_or_discard, delete_public_file, save_image_upload, save_manual_upload

logger = logging.getLogger(__name__)

products_router = APIRouter(prefix="/api/products", tags=["products"])

MANUAL_TYPES = {"installation", "user", "maintenance", "technical"}

# pole, která server spravuje sám a v PUT se nepřepisují
_READONLY_FIELDS = {"id", "product_type", "created_at", "updated_at"}


def _like(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _get_product_or_404(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def _validate_product(data: Dict[str, Any]):
    product_type = data.get("product_type") or "product"
    schema = CREATE_SCHEMAS.get(product_type)
    if schema is None:
        raise ValidationFailed(
            {"product_type": f"Input should be one of: {', '.join(CREATE_SCHEMAS)}"}
        )
    try:
        return schema.model_validate({**data, "product_type": product_type})
    except ValidationError as exc:
        raise ValidationFailed(field_messages(exc.errors()))


def _sku_taken(db: Session, sku: str, exclude_id: Optional[int] = None) -> bool:
    q = db.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    return q.first() is not None


def _commit_product(db: Session, product: Product) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="SKU already exists")
    db.refresh(product)


def _product_files(product: Product) -> List[str]:
    images = product.images or {}
    files = [images.get("main")] + list(images.get("gallery") or [])
    files += [m.get("url") for m in (product.manuals or [])]
    for comment in product.comments:
        files.append(comment.image)
    return [f for f in files if f]


# /search a /categories musí být registrované před /{product_id}
@products_router.get("/search", response_model=List[AnyProductOut])
def search_products(
    q: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    term = (q or "").strip()
    if not term:
        raise HTTPException(status_code=400, detail="Search query is required")

    pattern = _like(term)
    query = db.query(Product).filter(
        Product.status == "active",
        or_(
            Product.name.ilike(pattern, escape="\\"),
            Product.description.ilike(pattern, escape="\\"),
            Product.short_description.ilike(pattern, escape="\\"),
            Product.search_text.like(_like(term.lower()), escape="\\"),
            Product.model.ilike(pattern, escape="\\"),
            Product.sku.ilike(pattern, escape="\\"),
        ),
    )
    if category:
        query = query.filter(Product.category == category)

    rows = query.order_by(Product.name.asc()).limit(limit).all()
    return [to_product_out(p) for p in rows]


@products_router.get("/categories", response_model=List[CategoryBrands])
def list_categories(db: Session = Depends(get_db)):
    rows = (
        db.query(Product.category, Product.brand_id, Product.brand)
        .filter(Product.status == "active")
        .all()
    )

    brands_by_category: Dict[str, Dict[str, str]] = {}
    for category, brand_id, brand in rows:
        brands = brands_by_category.setdefault(category, {})
        if not brand_id or brand_id in brands:
            continue
        brands[brand_id] = (brand or {}).get("name") or brand_id

    result = []
    for category in CATEGORIES:
        if category not in brands_by_category:
            continue
        brands = brands_by_category[category]
        result.append(
            {
                "category": category,
                "brands": [{"id": bid, "name": name} for bid, name in sorted(brands.items(), key=lambda x: x[1])],
            }
        )
    return result


@products_router.get("", response_model=ProductListResponse)
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = None,
    status_filter: str = Query("active", alias="status"),
    search: Optional[str] = None,
    brand_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    query = db.query(Product).filter(Product.status == status_filter)

    if category:
        query = query.filter(Product.category == category)
    if brand_id:
        query = query.filter(Product.brand_id == brand_id)

    words = (search or "").split()
    if words:
        conditions = []
        for word in words:
            pattern = _like(word)
            conditions += [
                Product.name.ilike(pattern, escape="\\"),
                Product.description.ilike(pattern, escape="\\"),
                Product.short_description.ilike(pattern, escape="\\"),
                Product.search_text.like(_like(word.lower()), escape="\\"),
            ]
        query = query.filter(or_(*conditions))

    total = query.count()
    rows = (
        query.order_by(Product.created_at.desc(), Product.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "products": [to_product_out(p) for p in rows],
        "total": total,
        "pages": math.ceil(total / limit),
        "current_page": page,
    }


@products_router.get("/{product_id}", response_model=AnyProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return to_product_out(_get_product_or_404(db, product_id))


@products_router.post("", response_model=AnyProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    data = _validate_product(payload)

    if _sku_taken(db, data.sku):
        raise HTTPException(status_code=400, detail="SKU already exists")

    values = data.model_dump(mode="json", exclude={"product_type"})
    product = PRODUCT_MODELS[data.product_type](**values)
    db.add(product)
    _commit_product(db, product)

    logger.info("Product %s (%s) created by %s", product.id, product.sku, admin.username)
    return to_product_out(product)


@products_router.put("/{product_id}", response_model=AnyProductOut)
def update_product(
    product_id: int,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    product = _get_product_or_404(db, product_id)

    new_type = payload.get("product_type")
    if new_type is not None and new_type != product.product_type:
        raise HTTPException(status_code=400, detail="Product type cannot be changed")

    current = to_product_out(product).model_dump(mode="json")
    merged = {k: v for k, v in current.items() if k not in _READONLY_FIELDS}
    merged.update({k: v for k, v in payload.items() if k not in _READONLY_FIELDS})
    merged["product_type"] = product.product_type

    data = _validate_product(merged)

    if data.sku != product.sku and _sku_taken(db, data.sku, exclude_id=product.id):
        raise HTTPException(status_code=400, detail="SKU already exists")

    # JSON sloupce se přiřazují celé, změny uvnitř seznamu SQLAlchemy nesleduje
    for field, value in data.model_dump(mode="json", exclude={"product_type"}).items():
        setattr(product, field, value)

    db.add(product)
    _commit_product(db, product)

    logger.info("Product %s updated by %s", product.id, admin.username)
    return to_product_out(product)


@products_router.delete("/{product_id}")
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    product = _get_product_or_404(db, product_id)
    files = _product_files(product)

    db.delete(product)
    db.commit()

    removed = sum(1 for f in files if delete_public_file(f))
    logger.info("Product %s deleted by %s (%d local files removed)", product_id, admin.username, removed)
    return {"message": "Product deleted successfully"}


@products_router.post("/{product_id}/images", response_model=AnyProductOut)
def upload_product_image(
    product_id: int,
    image: UploadFile = File(...),
    kind: str = Form("gallery"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if kind not in ("main", "gallery"):
        raise HTTPException(status_code=400, detail="Image kind must be 'main' or 'gallery'")

    product = _get_product_or_404(db, product_id)
    path = save_image_upload(image, config.PRODUCT_IMAGES_DIR, "product")

    images = dict(product.images or {"main": None, "gallery": []})
    previous = None
    if kind == "main":
        previous = images.get("main")
        images["main"] = path
    else:
        images["gallery"] = list(images.get("gallery") or []) + [path]

    product.images = images
    db.add(product)
    commit_or_discard(db, [path])
    # původní hlavní obrázek až po úspěšném commitu
    delete_public_file(previous)
    db.refresh(product)
    return to_product_out(product)


@products_router.post("/{product_id}/manuals", response_model=AnyProductOut)
def upload_product_manual(
    product_id: int,
    file: UploadFile = File(...),
    title: str = Form(...),
    manual_type: str = Form("user", alias="type"),
    language: str = Form("en"),
    version: str = Form("1.0"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if manual_type not in MANUAL_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Manual type must be one of: {', '.join(sorted(MANUAL_TYPES))}",
        )
    if not title.strip():
        raise HTTPException(status_code=400, detail="Manual title is required")

    product = _get_product_or_404(db, product_id)
    url, size = save_manual_upload(file, "manual")

    manual = {
        "title": title.strip(),
        "url": url,
        "type": manual_type,
        "language": language,
        "version": version,
        "last_updated": datetime.now(timezone.utc).isoformat(),
        "file_size": size,
    }
    product.manuals = list(product.manuals or []) + [manual]
    db.add(product)
    commit_or_discard(db, [url])
    db.refresh(product)

    logger.info("Manual %s attached to product %s", url, product.id)
    return to_product_out(product)
