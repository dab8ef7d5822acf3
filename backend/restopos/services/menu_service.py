# Overview: Menu lookups used when snapshotting order lines, plus basic menu upkeep.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from sqlalchemy.exc import IntegrityError

from ..models import Category, MenuItem, OrderItem
from ..validation import ConflictError, NotFoundError, ValidationError, optional_text, parse_bool, parse_int, parse_money
from .concurrency import atomic


@dataclass(frozen=True)
class ResolvedItem:
    item_id: int
    item_name: str
    price: Decimal


class MenuLookup(Protocol):
    """Resolves a menu item id to its current name and price."""

    def resolve_item(self, item_id: int) -> ResolvedItem:
        ...


class SqlMenuLookup:
    """MenuLookup backed by the menu_items table, read inside the caller's transaction."""

    def __init__(self, session):
        self.session = session

    def resolve_item(self, item_id: int) -> ResolvedItem:
        item = self.session.get(MenuItem, item_id)
        if item is None:
            raise NotFoundError(f"Menu item with ID {item_id} not found")
        return ResolvedItem(item_id=item.id, item_name=item.item_name, price=item.price)


def list_menu_items(session, *, available_only: bool = False) -> list[MenuItem]:
    q = session.query(MenuItem).join(Category, MenuItem.category_id == Category.id)
    if available_only:
        q = q.filter(MenuItem.is_available.is_(True))
    return q.order_by(Category.category_name, MenuItem.item_name).all()


def get_menu_item(session, item_id: int) -> MenuItem:
    item = session.get(MenuItem, item_id)
    if item is None:
        raise NotFoundError("Menu item not found")
    return item


def get_or_create_category(session, category_name: str, description: str | None = None) -> Category:
    """Find a category by name or add it to the session (caller commits)."""
    category = session.query(Category).filter_by(category_name=category_name).first()
    if category is None:
        category = Category(category_name=category_name, description=description)
        session.add(category)
        session.flush()
    return category


def list_categories(session) -> list[Category]:
    return session.query(Category).order_by(Category.category_name).all()


def create_category(session, data: dict) -> Category:
    name = optional_text(data.get("category_name"), "category_name", max_length=100)
    if not name:
        raise ValidationError("category_name is required")

    try:
        with atomic(session):
            category = Category(
                category_name=name,
                description=optional_text(data.get("description"), "description"),
            )
            session.add(category)
            session.flush()
    except IntegrityError:
        raise ConflictError(f"Category '{name}' already exists")
    return category


def _validated_item_fields(data: dict, *, partial: bool) -> dict:
    """Parse menu item fields; with partial=True only the keys present are returned."""
    fields = {}

    if "item_name" in data or not partial:
        name = optional_text(data.get("item_name"), "item_name", max_length=255)
        if not name:
            raise ValidationError("item_name is required")
        fields["item_name"] = name
    if "price" in data or not partial:
        fields["price"] = parse_money(data.get("price"), "price")
    if "category_id" in data or not partial:
        fields["category_id"] = parse_int(data.get("category_id"), "category_id", minimum=1)
    if "description" in data:
        fields["description"] = optional_text(data.get("description"), "description")
    if "is_available" in data:
        fields["is_available"] = parse_bool(data.get("is_available"), "is_available")
        if fields["is_available"] is None:
            raise ValidationError("is_available must be a boolean")
    elif not partial:
        fields["is_available"] = True

    return fields


def _check_category(session, category_id: int | None) -> None:
    if category_id is not None and session.get(Category, category_id) is None:
        raise NotFoundError(f"Category {category_id} not found")


def create_menu_item(session, data: dict) -> MenuItem:
    fields = _validated_item_fields(data, partial=False)

    try:
        with atomic(session):
            _check_category(session, fields["category_id"])
            item = MenuItem(**fields)
            session.add(item)
            session.flush()
    except IntegrityError:
        raise ConflictError(f"Menu item '{fields['item_name']}' already exists")
    return item


def update_menu_item(session, item_id: int, data: dict) -> MenuItem:
    """
    Change a menu item's name, price, category, description or availability.

    Existing order lines keep the name and price they were created with.
    """
    fields = _validated_item_fields(data, partial=True)

    try:
        with atomic(session):
            item = get_menu_item(session, item_id)
            _check_category(session, fields.get("category_id"))
            for key, value in fields.items():
                setattr(item, key, value)
            session.flush()
    except IntegrityError:
        raise ConflictError(f"Menu item '{fields.get('item_name')}' already exists")
    return item


def delete_menu_item(session, item_id: int) -> None:
    """Delete a menu item no order line references; referenced items can be made unavailable."""
    with atomic(session):
        item = get_menu_item(session, item_id)
        in_use = session.query(OrderItem.id).filter_by(item_id=item_id).first()
        if in_use:
            raise ConflictError("Menu item appears on orders; mark it unavailable instead")
        session.delete(item)
