# Overview: Service-layer operations for product listings; encapsulates business logic and database work.

"""
Product Service

Public catalogue reads (filter, sort, paginate) and owner-or-admin writes.
Images are stored through upload_service; file cleanup is best-effort and
never fails a request.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import joinedload

from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Category, Product, User
from ..validation import ModelValidationPolicy, enforce_rules_product, validate_payload
from . import upload_service
from .review_service import product_rating_summary


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price", "stock", "categoryId", "status"},
    required_on_create={"name", "price", "categoryId"},
    aliases={"categoryId": "category_id"},
)

# Wire name -> sortable column
SORTABLE_FIELDS = {
    "id": Product.id,
    "name": Product.name,
    "price": Product.price,
    "stock": Product.stock,
    "createdAt": Product.created_at,
    "updatedAt": Product.updated_at,
}

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _parse_page_arg(raw, name: str, default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a positive integer")
    if value < 1:
        raise ValidationError(f"{name} must be a positive integer")
    return value


def _parse_price_arg(raw, name: str) -> Decimal | None:
    if raw is None or raw == "":
        return None
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        raise ValidationError(f"{name} must be a number")
    if not value.is_finite():
        raise ValidationError(f"{name} must be a number")
    return value


def _order_by_clauses(sort: str | None) -> list:
    if not sort:
        return [Product.created_at.desc(), Product.id.desc()]

    clauses = []
    for raw in sort.split(","):
        field = raw.strip()
        if not field:
            continue
        descending = field.startswith("-")
        key = field[1:] if descending else field
        column = SORTABLE_FIELDS.get(key)
        if column is None:
            raise ValidationError(
                f"Cannot sort by {key!r}. Allowed: {', '.join(sorted(SORTABLE_FIELDS))}"
            )
        clauses.append(column.desc() if descending else column.asc())

    # Stable pagination
    clauses.append(Product.id.asc())
    return clauses


def list_products(args) -> dict:
    """
    Public listing.

    Query params:
    - name: case-insensitive substring match
    - price[gte], price[lte]: price bounds (inclusive)
    - categoryId: exact category
    - sort: comma list of fields, "-" prefix for descending (default newest first)
    - page (default 1), limit (default 10, max 100)
    """
    query = db.session.query(Product)

    name = (args.get("name") or "").strip()
    if name:
        query = query.filter(Product.name.ilike(f"%{name}%"))

    price_gte = _parse_price_arg(args.get("price[gte]"), "price[gte]")
    if price_gte is not None:
        query = query.filter(Product.price >= price_gte)

    price_lte = _parse_price_arg(args.get("price[lte]"), "price[lte]")
    if price_lte is not None:
        query = query.filter(Product.price <= price_lte)

    category_id = args.get("categoryId")
    if category_id not in (None, ""):
        query = query.filter(Product.category_id == _parse_page_arg(category_id, "categoryId", 0))

    page = _parse_page_arg(args.get("page"), "page", DEFAULT_PAGE)
    limit = min(_parse_page_arg(args.get("limit"), "limit", DEFAULT_LIMIT), MAX_LIMIT)

    total = query.count()
    products = (
        query.options(joinedload(Product.producer), joinedload(Product.category))
        .order_by(*_order_by_clauses(args.get("sort")))
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    total_pages = (total + limit - 1) // limit if total > 0 else 1

    return {
        "products": [p.to_dict(include_relations=True) for p in products],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": total_pages,
            "hasNext": page < total_pages,
            "hasPrev": page > 1,
        },
    }


def list_my_products(owner_id: int) -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.user_id == owner_id)
        .order_by(Product.created_at.desc(), Product.id.desc())
        .all()
    )


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("No product found with that ID")
    return product


def product_detail(product_id: int) -> dict:
    product = get_product(product_id)
    data = product.to_dict(include_relations=True)
    data["rating"] = product_rating_summary(product.id)
    return data


def _require_category(category_id: int, message: str) -> None:
    if db.session.get(Category, category_id) is None:
        raise NotFoundError(message)


def _require_owner_or_admin(actor: User, product: Product, action: str) -> None:
    if product.user_id != actor.id and not actor.is_admin:
        raise ForbiddenError(f"You do not have permission to {action} this product")


def create_product(owner: User, payload, image=None) -> Product:
    """
    Create a listing owned by the caller. Optional image is a Werkzeug
    FileStorage from the multipart "image" field.
    """
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    _require_category(patch["category_id"], "Category not found")

    product = Product(user_id=owner.id, **patch)
    if image is not None:
        product.image_url = upload_service.save_product_image(image)

    db.session.add(product)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        upload_service.delete_image(product.image_url)
        raise
    return product


def update_product(actor: User, product_id: int, payload, image=None) -> Product:
    """
    Partial update by the owner or an admin. A new image replaces the old
    one; the previous file is removed after the commit.
    """
    product = get_product(product_id)
    _require_owner_or_admin(actor, product, "update")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    if "category_id" in patch and patch["category_id"] != product.category_id:
        _require_category(patch["category_id"], "The new category was not found")

    for k, v in patch.items():
        setattr(product, k, v)

    old_image_url = None
    new_image_url = None
    if image is not None:
        old_image_url = product.image_url
        new_image_url = upload_service.save_product_image(image)
        product.image_url = new_image_url

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        upload_service.delete_image(new_image_url)
        raise

    if old_image_url:
        upload_service.delete_image(old_image_url)
    return product


def delete_product(actor: User, product_id: int) -> None:
    """
    Delete a listing and its reviews. Order items keep their snapshot and
    lose the product reference.
    """
    product = get_product(product_id)
    _require_owner_or_admin(actor, product, "delete")

    image_url = product.image_url
    db.session.delete(product)
    db.session.commit()

    if image_url:
        upload_service.delete_image(image_url)
