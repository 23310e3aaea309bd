# Overview: Service-layer operations for categories.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import Category, Product
from ..validation import ModelValidationPolicy, validate_payload


CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "icon"},
    required_on_create={"name"},
)


def _name_taken(name: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Category.id).filter(Category.name == name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    return query.first() is not None


def _commit_or_conflict(name: str | None) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f'A category named "{name}" already exists')


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("No category found with that ID")
    return category


def create_category(payload) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)

    if _name_taken(patch["name"]):
        raise ConflictError(f'A category named "{patch["name"]}" already exists')

    category = Category(**patch)
    db.session.add(category)
    _commit_or_conflict(patch["name"])
    return category


def update_category(category_id: int, payload) -> Category:
    category = get_category(category_id)
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)

    if "name" in patch and _name_taken(patch["name"], exclude_id=category.id):
        raise ConflictError(f'A category named "{patch["name"]}" already exists')

    for k, v in patch.items():
        setattr(category, k, v)
    _commit_or_conflict(patch.get("name"))
    return category


def delete_category(category_id: int) -> None:
    category = get_category(category_id)

    in_use = db.session.query(Product.id).filter(Product.category_id == category.id).count()
    if in_use:
        raise ConflictError(
            "Category still has products; move or delete them first",
            details={"products": in_use},
        )

    db.session.delete(category)
    db.session.commit()
