"""Category domain service."""

import re
from typing import Optional

from budgetsync.database.base import CategoryStore
from budgetsync.domain.entities import Category
from budgetsync.domain.errors import ConflictError, NotFoundError, ValidationError, category_not_found

PATH_SEPARATOR = " > "

# Default category tree, parents listed before their children
DEFAULT_CATEGORIES = [
    ("Income", None),
    ("Food & Dining", None),
    ("Transportation", None),
    ("Shopping", None),
    ("Bills & Utilities", None),
    ("Entertainment", None),
    ("Health & Fitness", None),
    ("Travel", None),
    ("Other", None),
    ("Salary", "Income"),
    ("Other Income", "Income"),
    ("Groceries", "Food & Dining"),
    ("Restaurants", "Food & Dining"),
    ("Coffee & Snacks", "Food & Dining"),
    ("Fuel", "Transportation"),
    ("Public Transit", "Transportation"),
    ("Taxi & Rideshare", "Transportation"),
    ("Parking", "Transportation"),
    ("Clothing", "Shopping"),
    ("Electronics", "Shopping"),
    ("Electricity", "Bills & Utilities"),
    ("Internet", "Bills & Utilities"),
    ("Phone", "Bills & Utilities"),
    ("Streaming", "Entertainment"),
    ("Pharmacy", "Health & Fitness"),
    ("Gym", "Health & Fitness"),
    ("Flights", "Travel"),
    ("Hotels", "Travel"),
]


def category_id_for(name: str, parent_id: Optional[str] = None) -> str:
    """Build a stable id from a category name, e.g. "food-dining/groceries"."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    if not slug:
        raise ValidationError(f"Category name '{name}' has no usable characters")
    return f"{parent_id}/{slug}" if parent_id else slug


class CategoryService:
    """Service for managing categories."""

    def __init__(self, store: CategoryStore):
        """Initialize category service.

        Args:
            store: Category store
        """
        self.store = store

    def create_category(self, name: str, parent_path: Optional[str] = None) -> Category:
        """Create a category.

        Args:
            name: Category name
            parent_path: Optional parent category path (e.g., "Food & Dining")

        Returns:
            The created category

        Raises:
            NotFoundError: If parent category doesn't exist
            ConflictError: If the category already exists
        """
        name = name.strip()
        if not name:
            raise ValidationError("Category name must not be empty")

        parent_id = None
        if parent_path is not None:
            parent = self.get_category_by_path(parent_path)
            if parent is None:
                raise NotFoundError(f"Parent category '{parent_path}' not found")
            parent_id = parent.id

        category = Category(id=category_id_for(name, parent_id), name=name, parent_id=parent_id)
        if self.store.find_by_id(category.id) is not None:
            raise ConflictError(f"Category '{category.id}' already exists")
        self.store.save(category)
        return category

    def get_category(self, category_id: str) -> Optional[Category]:
        return self.store.find_by_id(category_id)

    def get_category_by_path(self, path: str) -> Optional[Category]:
        """Get category by path.

        Args:
            path: Category path (e.g., "Food & Dining > Groceries")

        Returns:
            Category or None if not found
        """
        parent_id = None
        category = None
        for part in path.split(PATH_SEPARATOR.strip()):
            part = part.strip()
            if not part:
                return None
            try:
                category = self.store.find_by_id(category_id_for(part, parent_id))
            except ValidationError:
                return None
            if category is None:
                return None
            parent_id = category.id
        return category

    def list_categories(self, active_only: bool = False) -> list[Category]:
        return self.store.find_all(active_only=active_only)

    def get_category_tree(self) -> list[dict]:
        """Get full category tree.

        Returns:
            List of root category dicts, each with nested "children"
        """
        nodes = {c.id: {"category": c, "children": []} for c in self.store.find_all()}
        roots = []
        for node in nodes.values():
            parent_id = node["category"].parent_id
            if parent_id in nodes:
                nodes[parent_id]["children"].append(node)
            else:
                roots.append(node)
        return roots

    def format_category_path(self, category_id: str) -> str:
        """Get full path for a category, e.g. "Food & Dining > Groceries"."""
        category = self.get_category(category_id)
        if category is None:
            return ""

        parts = [category.name]
        current_parent_id = category.parent_id
        while current_parent_id is not None:
            parent = self.get_category(current_parent_id)
            if parent is None:
                break
            parts.append(parent.name)
            current_parent_id = parent.parent_id
        return PATH_SEPARATOR.join(reversed(parts))

    def delete_category(self, category_id: str) -> None:
        """Delete a category.

        Raises:
            NotFoundError: If the category doesn't exist
        """
        if self.store.find_by_id(category_id) is None:
            raise NotFoundError(category_not_found(category_id))
        self.store.delete(category_id)

    def init_default_categories(self) -> int:
        """Create any missing default categories.

        Returns:
            Number of categories created
        """
        names_to_ids: dict[str, str] = {}
        to_create = []
        for name, parent_name in DEFAULT_CATEGORIES:
            parent_id = names_to_ids[parent_name] if parent_name else None
            category_id = category_id_for(name, parent_id)
            names_to_ids[name] = category_id
            if self.store.find_by_id(category_id) is None:
                to_create.append(Category(id=category_id, name=name, parent_id=parent_id))
        self.store.save_all(to_create)
        return len(to_create)
