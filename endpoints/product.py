from fastapi import APIRouter, HTTPException, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
import logging
import math

from models.models import Product, User
from utils.security import get_current_user
from utils.response import create_response, not_found_response
from dataBase import get_db_session

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

router = APIRouter()

SORTABLE_FIELDS = {
    "created_at": Product.created_at,
    "name": Product.name,
    "price": Product.price,
    "quantity": Product.quantity,
}
DEFAULT_SORT = "created_at"
MAX_PAGE = 1_000_000
MAX_LIMIT = 100


class ProductPayload(BaseModel):
    """
    Data required to create or replace a product.

    **Attributes**:
    - **name**, **description**, **code**, **sku**: Required, non empty.
    - **price**: Base price, required.
    - **quantity**: Units in stock, required.
    - **colors**, **sizes**, **tags**, **gender**, **images**: Lists of strings.
    - **new_label**, **sale_label**: Optional badge definitions, e.g. `{"enabled": true, "content": "NEW"}`.
    """
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    sub_description: Optional[str] = None
    code: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    price_sale: Optional[float] = Field(None, ge=0)
    quantity: int = Field(..., ge=0)
    taxes: Optional[float] = Field(None, ge=0)
    images: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    gender: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    new_label: Optional[Dict[str, Any]] = None
    sale_label: Optional[Dict[str, Any]] = None
    is_published: bool = False


def paginate(query, page: int, limit: int) -> Dict[str, Any]:
    """
    Apply limit/offset to `query` and return the page together with the
    pagination block.
    """
    total = query.order_by(None).count()
    items = query.limit(limit).offset((page - 1) * limit).all()
    return {
        "products": [item.to_dict() for item in items],
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit),
        },
    }


def find_duplicate(db: Session, code: str, sku: str, exclude_id: Optional[int] = None) -> Optional[Product]:
    query = db.query(Product).filter(or_(Product.code == code, Product.sku == sku))
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first()


def like_pattern(text: str) -> str:
    """Substring LIKE pattern with `%`, `_` and `\\` in `text` matched literally."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@router.get("/list")
def list_products(page: int = Query(1, ge=1, le=MAX_PAGE), limit: int = Query(10, ge=1, le=MAX_LIMIT),
                  sort: str = DEFAULT_SORT, order: str = "asc", db: Session = Depends(get_db_session)):
    """
    List products page by page.

    - **page**: Page number, starting at 1.
    - **limit**: Page size, at most 100.
    - **sort**: One of `created_at`, `name`, `price`, `quantity`. Any other value sorts by `created_at`.
    - **order**: `desc` for descending order, anything else is ascending.
    """
    column = SORTABLE_FIELDS.get(sort, SORTABLE_FIELDS[DEFAULT_SORT])
    ordering = column.desc() if order.upper() == "DESC" else column.asc()

    query = db.query(Product).order_by(ordering, Product.id.asc())
    return create_response("success", "Products retrieved", paginate(query, page, limit))


@router.get("/search")
def search_products(query: str = "", page: int = Query(1, ge=1, le=MAX_PAGE),
                    limit: int = Query(10, ge=1, le=MAX_LIMIT), db: Session = Depends(get_db_session)):
    """
    Substring search over name, description, code and sku. Wildcard
    characters in `query` are matched literally.

    - **query**: Text to look for.
    - **page**: Page number, starting at 1.
    - **limit**: Page size, at most 100.
    """
    pattern = like_pattern(query)
    results = db.query(Product).filter(or_(
        Product.name.ilike(pattern, escape="\\"),
        Product.description.ilike(pattern, escape="\\"),
        Product.code.ilike(pattern, escape="\\"),
        Product.sku.ilike(pattern, escape="\\"),
    )).order_by(Product.id.asc())
    return create_response("success", "Products retrieved", paginate(results, page, limit))


@router.get("/details/{product_id}")
def get_product_details(product_id: int, db: Session = Depends(get_db_session)):
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        return not_found_response("Product", product_id)
    return create_response("success", "Product retrieved", product.to_dict())


@router.post("")
def create_product(request: ProductPayload, user: User = Depends(get_current_user), db: Session = Depends(get_db_session)):
    """
    Create a product. `code` and `sku` must not be used by another product.

    **Responses**:
    - **201 Created**: The created product.
    - **400 Bad Request**: Duplicate code/sku or missing fields.
    - **401 Unauthorized**: Missing or invalid bearer token.
    """
    if find_duplicate(db, request.code, request.sku):
        logger.warning("Duplicate code or sku on create: %s / %s", request.code, request.sku)
        return create_response("error", "Product with this code or SKU already exists", status_code=400)

    try:
        product = Product(**request.model_dump())
        db.add(product)
        db.commit()
        db.refresh(product)
    except IntegrityError:
        db.rollback()
        return create_response("error", "Product with this code or SKU already exists", status_code=400)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error creating product: %s", e)
        raise HTTPException(status_code=500, detail="Error creating product")

    logger.info("Product %s created by user %s", product.id, user.id)
    return create_response("success", "Product created", product.to_dict(), status_code=201)


@router.put("/{product_id}")
def update_product(product_id: int, request: ProductPayload, user: User = Depends(get_current_user),
                   db: Session = Depends(get_db_session)):
    """
    Replace all fields of an existing product.

    **Responses**:
    - **200 OK**: The updated product.
    - **400 Bad Request**: Duplicate code/sku or missing fields.
    - **404 Not Found**: No product with that id.
    """
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        return not_found_response("Product", product_id)

    if find_duplicate(db, request.code, request.sku, exclude_id=product_id):
        logger.warning("Duplicate code or sku on update of product %s", product_id)
        return create_response("error", "Product with this code or SKU already exists", status_code=400)

    try:
        for field, value in request.model_dump().items():
            setattr(product, field, value)
        db.commit()
        db.refresh(product)
    except IntegrityError:
        db.rollback()
        return create_response("error", "Product with this code or SKU already exists", status_code=400)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error updating product %s: %s", product_id, e)
        raise HTTPException(status_code=500, detail="Error updating product")

    logger.info("Product %s updated by user %s", product_id, user.id)
    return create_response("success", "Product updated", product.to_dict())


@router.delete("/{product_id}")
def delete_product(product_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db_session)):
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        return not_found_response("Product", product_id)

    try:
        db.delete(product)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error deleting product %s: %s", product_id, e)
        raise HTTPException(status_code=500, detail="Error deleting product")

    logger.info("Product %s deleted by user %s", product_id, user.id)
    return create_response("success", "Product deleted successfully", {"id": product_id})
