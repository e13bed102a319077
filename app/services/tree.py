import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import NotFoundError, StateError, ValidationError
from app.models.library import (
    Category,
    CategoryTranslation,
    Department,
    FileAccessDepartment,
    FileItem,
    FileRequest,
    FileRequestAccessDepartment,
    Section,
)
from app.models.person import Person
from app.schemas.library import (
    CategoryCreate,
    CategoryUpdate,
    DepartmentCreate,
    DepartmentUpdate,
)
from app.services import authz
from app.services.authz import Actor
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.event import EventType, publish_event
from app.services.i18n import languages
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


class _TreeNodes(ListResponseMixin):
    """Depth-tracked adjacency-list hierarchy.

    Every node stores ``depth`` (1 for a root, parent depth + 1 otherwise),
    bounded by ``max_depth``. Reparenting moves a whole subtree and shifts its
    depths in one transaction.
    """

    model: type[Department] | type[Category]
    label = "Node"
    entity_type = "node"
    moved_event: EventType
    deleted_event: EventType
    update_capability: str
    delete_capability: str

    def __init__(self, max_depth: int | None = None):
        self.max_depth = max_depth or settings.max_tree_depth

    def get(self, db: Session, node_id):
        node = db.get(self.model, coerce_uuid(node_id))
        if not node:
            raise NotFoundError(f"{self.label} not found")
        return node

    def descendants(self, db: Session, node_id) -> set[uuid.UUID]:
        """Ids of the node and every node below it."""
        return set(self._closure(db, coerce_uuid(node_id)))

    def ancestor_path(self, db: Session, node_id, lang: str | None = None) -> list[str]:
        """Names from the root down to the node. Display only."""
        node = self.get(db, node_id)
        names: list[str] = []
        seen: set[uuid.UUID] = set()
        while node is not None and node.id not in seen:
            seen.add(node.id)
            names.append(self._name(node, lang))
            node = db.get(self.model, node.parent_id) if node.parent_id else None
        names.reverse()
        return names

    def lineage(self, db: Session, node_id) -> set[uuid.UUID]:
        """Ids of the node and every node above it."""
        ids: set[uuid.UUID] = set()
        current = coerce_uuid(node_id)
        while current is not None and current not in ids:
            ids.add(current)
            current = db.scalar(
                select(self.model.parent_id).where(self.model.id == current)
            )
        return ids

    def reparent(self, db: Session, node_id, new_parent_id, actor: Actor):
        authz.require(actor, self.update_capability)
        node = self.get(db, node_id)
        try:
            move = self._stage_reparent(db, node, coerce_uuid(new_parent_id))
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(node)
        self._publish_move(node, move, actor)
        return node

    def _stage_reparent(self, db: Session, node, new_parent_id) -> dict:
        """Validate a move and apply it to the open transaction.

        Raises before touching any row when the move would create a cycle or
        push part of the subtree past ``max_depth``.
        """
        old_parent_id = node.parent_id
        new_depth = 1
        if new_parent_id is not None:
            parent = db.get(self.model, new_parent_id)
            if not parent:
                raise ValidationError("Parent not found")
            self._check_parent(node, parent)
            new_depth = parent.depth + 1
        if new_depth > self.max_depth:
            raise ValidationError("Max depth exceeded")

        closure = self._closure(db, node.id)
        if new_parent_id is not None and new_parent_id in closure:
            raise ValidationError("Invalid parent")

        delta = new_depth - node.depth
        if max(closure.values()) + delta > self.max_depth:
            raise ValidationError("Max depth exceeded")

        if delta:
            subtree = db.scalars(
                select(self.model).where(self.model.id.in_(list(closure)))
            ).all()
            for member in subtree:
                member.depth = member.depth + delta
        node.parent_id = new_parent_id
        db.flush()
        return {
            "old_parent_id": old_parent_id,
            "new_parent_id": new_parent_id,
            "delta": delta,
            "size": len(closure),
        }

    def _publish_move(self, node, move: dict, actor: Actor) -> None:
        logger.info(
            "Moved %s %s under %s (depth delta %d, %d nodes)",
            self.entity_type,
            node.id,
            move["new_parent_id"],
            move["delta"],
            move["size"],
        )
        publish_event(
            self.moved_event,
            entity_type=self.entity_type,
            entity_id=node.id,
            actor_id=actor.id,
            diff={
                "before": {"parent_id": _str(move["old_parent_id"])},
                "after": {"parent_id": _str(move["new_parent_id"])},
            },
        )

    def delete(self, db: Session, node_id, actor: Actor) -> None:
        authz.require(actor, self.delete_capability)
        node = self.get(db, node_id)
        has_children = db.scalar(
            select(self.model.id).where(self.model.parent_id == node.id).limit(1)
        )
        if has_children:
            raise StateError(f"{self.label} has children")
        self._check_deletable(db, node)
        db.delete(node)
        db.commit()
        logger.info("Deleted %s %s", self.entity_type, node_id)
        publish_event(
            self.deleted_event,
            entity_type=self.entity_type,
            entity_id=node_id,
            actor_id=actor.id,
        )

    def _closure(self, db: Session, root_id: uuid.UUID) -> dict[uuid.UUID, int]:
        root_depth = db.scalar(select(self.model.depth).where(self.model.id == root_id))
        if root_depth is None:
            raise NotFoundError(f"{self.label} not found")
        closure = {root_id: root_depth}
        frontier = [root_id]
        while frontier:
            rows = db.execute(
                select(self.model.id, self.model.depth).where(
                    self.model.parent_id.in_(frontier)
                )
            ).all()
            frontier = [row.id for row in rows if row.id not in closure]
            for row in rows:
                closure.setdefault(row.id, row.depth)
        return closure

    def _depth_under(self, parent) -> int:
        depth = parent.depth + 1 if parent is not None else 1
        if depth > self.max_depth:
            raise ValidationError("Max depth exceeded")
        return depth

    def _check_parent(self, node, parent) -> None:
        pass

    def _check_deletable(self, db: Session, node) -> None:
        pass

    def _name(self, node, lang: str | None) -> str:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------------


class Departments(_TreeNodes):
    model = Department
    label = "Department"
    entity_type = "department"
    moved_event = EventType.department_moved
    deleted_event = EventType.department_deleted
    update_capability = authz.DEPARTMENT_UPDATE
    delete_capability = authz.DEPARTMENT_DELETE

    def create(self, db: Session, payload: DepartmentCreate, actor: Actor) -> Department:
        authz.require(actor, authz.DEPARTMENT_ADD)
        parent = None
        if payload.parent_id:
            parent = db.get(Department, coerce_uuid(payload.parent_id))
            if not parent:
                raise ValidationError("Parent not found")
        depth = self._depth_under(parent)

        department = Department(
            name=payload.name.strip(),
            parent_id=parent.id if parent else None,
            depth=depth,
        )
        db.add(department)
        db.commit()
        db.refresh(department)
        logger.info("Created department %s at depth %d", department.id, depth)
        publish_event(
            EventType.department_created,
            entity_type=self.entity_type,
            entity_id=department.id,
            actor_id=actor.id,
            diff={
                "after": {
                    "name": department.name,
                    "parent_id": _str(department.parent_id),
                }
            },
        )
        return department

    def list(
        self,
        db: Session,
        parent_id: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Department]:
        stmt = select(Department)
        if parent_id is not None:
            stmt = stmt.where(Department.parent_id == coerce_uuid(parent_id))
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "name": Department.name,
                "depth": Department.depth,
                "created_at": Department.created_at,
            },
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    def update(
        self, db: Session, department_id: str, payload: DepartmentUpdate, actor: Actor
    ) -> Department:
        """Rename or move a department in a single transaction."""
        authz.require(actor, authz.DEPARTMENT_UPDATE)
        department = self.get(db, department_id)
        data = payload.model_dump(exclude_unset=True)
        moving = "parent_id" in data and data["parent_id"] != department.parent_id
        old_name = department.name
        new_name = data["name"].strip() if data.get("name") else None

        move = None
        try:
            if moving:
                move = self._stage_reparent(db, department, data["parent_id"])
            if new_name:
                department.name = new_name
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(department)

        if move:
            self._publish_move(department, move, actor)
        if new_name:
            logger.info("Renamed department %s", department.id)
            publish_event(
                EventType.department_updated,
                entity_type=self.entity_type,
                entity_id=department.id,
                actor_id=actor.id,
                diff={"before": {"name": old_name}, "after": {"name": department.name}},
            )
        return department

    def _check_deletable(self, db: Session, node: Department) -> None:
        has_members = db.scalar(
            select(Person.id).where(Person.department_id == node.id).limit(1)
        )
        if has_members:
            raise StateError("Department has members")
        has_grants = db.scalar(
            select(FileAccessDepartment.id)
            .where(FileAccessDepartment.department_id == node.id)
            .limit(1)
        ) or db.scalar(
            select(FileRequestAccessDepartment.id)
            .where(FileRequestAccessDepartment.department_id == node.id)
            .limit(1)
        )
        if has_grants:
            raise StateError("Department has access grants")

    def _name(self, node: Department, lang: str | None) -> str:
        return node.name


# ---------------------------------------------------------------------------
# Categories (per section)
# ---------------------------------------------------------------------------


class Categories(_TreeNodes):
    model = Category
    label = "Category"
    entity_type = "category"
    moved_event = EventType.category_moved
    deleted_event = EventType.category_deleted
    update_capability = authz.CATEGORY_UPDATE
    delete_capability = authz.CATEGORY_DELETE

    def create(self, db: Session, payload: CategoryCreate, actor: Actor) -> Category:
        authz.require(actor, authz.CATEGORY_ADD)
        translations = languages.clean_translations(payload.translations)
        section = db.get(Section, coerce_uuid(payload.section_id))
        if not section:
            raise NotFoundError("Section not found")

        parent = None
        if payload.parent_id:
            parent = db.get(Category, coerce_uuid(payload.parent_id))
            if not parent:
                raise ValidationError("Parent not found")
            if parent.section_id != section.id:
                raise ValidationError("Parent is in another section")
        depth = self._depth_under(parent)

        try:
            category = Category(
                section_id=section.id,
                parent_id=parent.id if parent else None,
                depth=depth,
            )
            db.add(category)
            db.flush()
            for item in translations:
                db.add(CategoryTranslation(category_id=category.id, **item))
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(category)
        logger.info("Created category %s in section %s", category.id, section.id)
        publish_event(
            EventType.category_created,
            entity_type=self.entity_type,
            entity_id=category.id,
            actor_id=actor.id,
            diff={"after": {"section_id": str(section.id), "parent_id": _str(category.parent_id)}},
        )
        return category

    def list(
        self,
        db: Session,
        section_id: str | None,
        parent_id: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Category]:
        stmt = select(Category)
        if section_id is not None:
            stmt = stmt.where(Category.section_id == coerce_uuid(section_id))
        if parent_id is not None:
            stmt = stmt.where(Category.parent_id == coerce_uuid(parent_id))
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"depth": Category.depth, "created_at": Category.created_at},
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    def update(
        self, db: Session, category_id: str, payload: CategoryUpdate, actor: Actor
    ) -> Category:
        authz.require(actor, authz.CATEGORY_UPDATE)
        category = self.get(db, category_id)
        data = payload.model_dump(exclude_unset=True)
        moving = "parent_id" in data and data["parent_id"] != category.parent_id
        translations = None
        if data.get("translations") is not None:
            translations = languages.clean_translations(payload.translations)

        move = None
        try:
            if moving:
                move = self._stage_reparent(db, category, data["parent_id"])
            if translations is not None:
                for existing in list(category.translations):
                    db.delete(existing)
                db.flush()
                for item in translations:
                    db.add(CategoryTranslation(category_id=category.id, **item))
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(category)

        if move:
            self._publish_move(category, move, actor)
        if translations is not None:
            logger.info("Updated translations of category %s", category.id)
            publish_event(
                EventType.category_updated,
                entity_type=self.entity_type,
                entity_id=category.id,
                actor_id=actor.id,
                metadata={"langs": [item["lang"] for item in translations]},
            )
        return category

    def _check_parent(self, node: Category, parent: Category) -> None:
        if parent.section_id != node.section_id:
            raise ValidationError("Parent is in another section")

    def _check_deletable(self, db: Session, node: Category) -> None:
        has_files = db.scalar(
            select(FileItem.id).where(FileItem.category_id == node.id).limit(1)
        ) or db.scalar(
            select(FileRequest.id).where(FileRequest.category_id == node.id).limit(1)
        )
        if has_files:
            raise StateError("Category has files")

    def _name(self, node: Category, lang: str | None) -> str:
        picked = languages.select(node.translations, lang)
        return picked.title if picked else str(node.id)


def _str(value) -> str | None:
    return str(value) if value is not None else None


departments = Departments()
categories = Categories()
