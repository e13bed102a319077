import uuid
from unittest.mock import patch

import pytest

from app.errors import ForbiddenError, NotFoundError, StateError, ValidationError
from app.models.library import (
    AccessType,
    Category,
    CategoryTranslation,
    Department,
    FileAccessDepartment,
    FileItem,
    Section,
)
from app.schemas.library import (
    CategoryCreate,
    CategoryUpdate,
    DepartmentCreate,
    DepartmentUpdate,
)
from app.services.authz import Actor
from app.services.tree import Categories, Departments


def _assert_depths_consistent(db_session):
    rows = {d.id: d for d in db_session.query(Department).all()}
    for department in rows.values():
        expected = 1 if department.parent_id is None else rows[department.parent_id].depth + 1
        assert department.depth == expected, department.name


class TestDepartmentCreate:
    def test_root_has_depth_one(self, db_session, actor):
        department = Departments().create(db_session, DepartmentCreate(name=" Finance "), actor)
        assert department.depth == 1
        assert department.parent_id is None
        assert department.name == "Finance"

    def test_child_depth_follows_parent(self, db_session, actor, department):
        child = Departments().create(
            db_session, DepartmentCreate(name="Payroll", parent_id=department.id), actor
        )
        assert child.depth == department.depth + 1

    def test_missing_parent_rejected(self, db_session, actor):
        with pytest.raises(ValidationError) as exc:
            Departments().create(
                db_session, DepartmentCreate(name="X", parent_id=uuid.uuid4()), actor
            )
        assert exc.value.status_code == 400
        assert exc.value.detail == "Parent not found"

    def test_max_depth_enforced(self, db_session, actor, make_department):
        service = Departments(max_depth=3)
        top = make_department("L1")
        middle = make_department("L2", parent=top)
        bottom = make_department("L3", parent=middle)
        with pytest.raises(ValidationError) as exc:
            service.create(
                db_session, DepartmentCreate(name="L4", parent_id=bottom.id), actor
            )
        assert exc.value.detail == "Max depth exceeded"

    def test_requires_capability(self, db_session, person):
        with pytest.raises(ForbiddenError) as exc:
            Departments().create(
                db_session, DepartmentCreate(name="X"), Actor(id=person.id)
            )
        assert exc.value.status_code == 403

    def test_publishes_audit_event(self, db_session, actor, audit_delay):
        department = Departments().create(db_session, DepartmentCreate(name="Audit"), actor)
        audit_delay.assert_called_once()
        kwargs = audit_delay.call_args.kwargs
        assert kwargs["action"] == "department.created"
        assert kwargs["entity_id"] == str(department.id)
        assert kwargs["actor_id"] == str(actor.id)


class TestDepartmentReparent:
    def test_moves_subtree_and_shifts_depths(self, db_session, actor, make_department):
        a = make_department("A")
        b = make_department("B", parent=a)
        c = make_department("C", parent=b)
        other = make_department("Other")
        deep = make_department("Deep", parent=other)

        Departments().reparent(db_session, b.id, deep.id, actor)

        db_session.refresh(b)
        db_session.refresh(c)
        assert b.parent_id == deep.id
        assert b.depth == 3
        assert c.depth == 4
        _assert_depths_consistent(db_session)

    def test_move_to_root(self, db_session, actor, make_department):
        a = make_department("A")
        b = make_department("B", parent=a)
        c = make_department("C", parent=b)

        Departments().reparent(db_session, b.id, None, actor)

        db_session.refresh(b)
        db_session.refresh(c)
        assert b.parent_id is None
        assert b.depth == 1
        assert c.depth == 2

    def test_sequence_of_moves_keeps_depth_invariant(
        self, db_session, actor, make_department
    ):
        service = Departments()
        a = make_department("A")
        b = make_department("B", parent=a)
        c = make_department("C", parent=b)
        d = make_department("D")
        e = make_department("E", parent=d)

        service.reparent(db_session, c.id, e.id, actor)
        service.reparent(db_session, d.id, b.id, actor)
        service.reparent(db_session, b.id, None, actor)
        service.reparent(db_session, a.id, c.id, actor)

        _assert_depths_consistent(db_session)

    def test_under_own_descendant_rejected_and_tree_unchanged(
        self, db_session, actor, make_department
    ):
        a = make_department("A")
        b = make_department("B", parent=a)
        c = make_department("C", parent=b)
        before = {
            d.id: (d.parent_id, d.depth) for d in db_session.query(Department).all()
        }

        with pytest.raises(ValidationError) as exc:
            Departments().reparent(db_session, a.id, c.id, actor)
        assert exc.value.detail == "Invalid parent"

        db_session.expire_all()
        after = {
            d.id: (d.parent_id, d.depth) for d in db_session.query(Department).all()
        }
        assert after == before

    def test_under_itself_rejected(self, db_session, actor, department):
        with pytest.raises(ValidationError):
            Departments().reparent(db_session, department.id, department.id, actor)

    def test_depth_overflow_of_subtree_rejected(self, db_session, actor, make_department):
        service = Departments(max_depth=3)
        a = make_department("A")
        b = make_department("B", parent=a)
        make_department("C", parent=b)
        target = make_department("T")

        # A's subtree spans three levels; under T it would reach depth 4
        with pytest.raises(ValidationError) as exc:
            service.reparent(db_session, a.id, target.id, actor)
        assert exc.value.detail == "Max depth exceeded"

    def test_update_with_parent_moves_node(
        self, db_session, actor, make_department, audit_delay
    ):
        a = make_department("A")
        b = make_department("B")
        moved = Departments().update(
            db_session, str(b.id), DepartmentUpdate(parent_id=a.id), actor
        )
        assert moved.parent_id == a.id
        assert moved.depth == 2
        actions = [call.kwargs["action"] for call in audit_delay.call_args_list]
        assert "department.moved" in actions

    def test_rename(self, db_session, actor, department):
        renamed = Departments().update(
            db_session, str(department.id), DepartmentUpdate(name="HQ"), actor
        )
        assert renamed.name == "HQ"
        assert renamed.parent_id is None

    def test_rename_and_move_commit_together(
        self, db_session, actor, make_department, audit_delay
    ):
        a = make_department("A")
        b = make_department("B")
        with patch.object(db_session, "commit", wraps=db_session.commit) as commit:
            updated = Departments().update(
                db_session, str(b.id), DepartmentUpdate(name="B2", parent_id=a.id), actor
            )
        assert commit.call_count == 1
        assert (updated.name, updated.parent_id, updated.depth) == ("B2", a.id, 2)
        actions = [call.kwargs["action"] for call in audit_delay.call_args_list]
        assert actions[-2:] == ["department.moved", "department.updated"]

    def test_invalid_move_discards_rename(self, db_session, actor, make_department):
        a = make_department("A")
        b = make_department("B", parent=a)
        with pytest.raises(ValidationError):
            Departments().update(
                db_session, str(a.id), DepartmentUpdate(name="Renamed", parent_id=b.id), actor
            )
        db_session.expire_all()
        assert db_session.get(Department, a.id).name == "A"

    def test_failed_commit_rolls_back_subtree_move(
        self, db_session, actor, make_department
    ):
        a = make_department("A")
        b = make_department("B", parent=a)
        make_department("C", parent=b)
        target = make_department("T")
        deep = make_department("T2", parent=target)
        before = {
            d.id: (d.parent_id, d.depth) for d in db_session.query(Department).all()
        }

        with patch.object(db_session, "commit", side_effect=RuntimeError("db down")):
            with pytest.raises(RuntimeError):
                Departments().reparent(db_session, b.id, deep.id, actor)

        db_session.expire_all()
        after = {
            d.id: (d.parent_id, d.depth) for d in db_session.query(Department).all()
        }
        assert after == before


class TestDepartmentDelete:
    def test_delete_leaf(self, db_session, actor, make_department):
        leaf_id = make_department("Leaf").id
        Departments().delete(db_session, leaf_id, actor)
        assert db_session.get(Department, leaf_id) is None

    def test_delete_with_children_rejected(self, db_session, actor, make_department):
        parent = make_department("Parent")
        make_department("Child", parent=parent)
        with pytest.raises(StateError) as exc:
            Departments().delete(db_session, parent.id, actor)
        assert exc.value.status_code == 409
        assert exc.value.detail == "Department has children"

    def test_delete_with_members_rejected(self, db_session, actor, department):
        # the acting person belongs to the department
        with pytest.raises(StateError) as exc:
            Departments().delete(db_session, department.id, actor)
        assert exc.value.detail == "Department has members"

    def test_delete_with_access_grants_rejected(
        self, db_session, actor, make_department, section, category
    ):
        granted = make_department("Granted")
        item = FileItem(
            section_id=section.id,
            category_id=category.id,
            access_type=AccessType.restricted,
            created_by=actor.id,
        )
        db_session.add(item)
        db_session.flush()
        db_session.add(FileAccessDepartment(file_item_id=item.id, department_id=granted.id))
        db_session.commit()

        with pytest.raises(StateError) as exc:
            Departments().delete(db_session, granted.id, actor)
        assert exc.value.detail == "Department has access grants"

    def test_delete_missing(self, db_session, actor):
        with pytest.raises(NotFoundError):
            Departments().delete(db_session, uuid.uuid4(), actor)


class TestDepartmentQueries:
    def test_descendants_include_self_and_subtree_only(
        self, db_session, make_department
    ):
        a = make_department("A")
        b = make_department("B", parent=a)
        c = make_department("C", parent=b)
        sibling = make_department("Sibling", parent=a)

        assert Departments().descendants(db_session, b.id) == {b.id, c.id}
        assert Departments().descendants(db_session, a.id) == {
            a.id,
            b.id,
            c.id,
            sibling.id,
        }

    def test_descendants_of_missing_node(self, db_session):
        with pytest.raises(NotFoundError):
            Departments().descendants(db_session, uuid.uuid4())

    def test_ancestor_path(self, db_session, make_department):
        a = make_department("A")
        b = make_department("B", parent=a)
        c = make_department("C", parent=b)
        assert Departments().ancestor_path(db_session, c.id) == ["A", "B", "C"]

    def test_list_by_parent(self, db_session, make_department):
        a = make_department("A")
        make_department("B", parent=a)
        make_department("C", parent=a)
        items = Departments().list(db_session, str(a.id), "name", "asc", 10, 0)
        assert [d.name for d in items] == ["B", "C"]

    def test_list_invalid_order_by(self, db_session):
        with pytest.raises(ValidationError):
            Departments().list(db_session, None, "bogus", "asc", 10, 0)


class TestCategories:
    def _create(self, db_session, actor, section, parent=None, title="Orders"):
        return Categories().create(
            db_session,
            CategoryCreate(
                section_id=section.id,
                parent_id=parent.id if parent else None,
                translations=[{"lang": "en", "title": title}],
            ),
            actor,
        )

    def test_create_with_translations(self, db_session, actor, section):
        category = self._create(db_session, actor, section)
        assert category.depth == 1
        assert [t.lang for t in category.translations] == ["en"]

    def test_blank_translations_rejected(self, db_session, actor, section):
        with pytest.raises(ValidationError) as exc:
            Categories().create(
                db_session,
                CategoryCreate(
                    section_id=section.id,
                    translations=[{"lang": "en", "title": "   "}],
                ),
                actor,
            )
        assert exc.value.detail == "Translations required"

    def test_unknown_section(self, db_session, actor):
        with pytest.raises(NotFoundError):
            Categories().create(
                db_session,
                CategoryCreate(
                    section_id=uuid.uuid4(), translations=[{"lang": "en", "title": "X"}]
                ),
                actor,
            )

    def test_parent_from_other_section_rejected(self, db_session, actor, section):
        other = Section(name="Other")
        db_session.add(other)
        db_session.commit()
        parent = self._create(db_session, actor, section)

        with pytest.raises(ValidationError) as exc:
            Categories().create(
                db_session,
                CategoryCreate(
                    section_id=other.id,
                    parent_id=parent.id,
                    translations=[{"lang": "en", "title": "Child"}],
                ),
                actor,
            )
        assert exc.value.detail == "Parent is in another section"

    def test_reparent_across_sections_rejected(self, db_session, actor, section):
        other = Section(name="Other")
        db_session.add(other)
        db_session.commit()
        first = self._create(db_session, actor, section)
        foreign = self._create(db_session, actor, other)

        with pytest.raises(ValidationError):
            Categories().reparent(db_session, first.id, foreign.id, actor)

    def test_ancestor_path_uses_language_fallback(self, db_session, actor, section):
        root = Categories().create(
            db_session,
            CategoryCreate(
                section_id=section.id,
                translations=[
                    {"lang": "ru", "title": "Корень"},
                    {"lang": "en", "title": "Root"},
                ],
            ),
            actor,
        )
        leaf = self._create(db_session, actor, section, parent=root, title="Leaf")

        assert Categories().ancestor_path(db_session, leaf.id, "en") == ["Root", "Leaf"]
        assert Categories().ancestor_path(db_session, leaf.id, "uz") == ["Корень", "Leaf"]

    def test_replace_translations(self, db_session, actor, section):
        category = self._create(db_session, actor, section)
        updated = Categories().update(
            db_session,
            str(category.id),
            CategoryUpdate(translations=[{"lang": "uz", "title": "Buyruqlar"}]),
            actor,
        )
        assert [(t.lang, t.title) for t in updated.translations] == [("uz", "Buyruqlar")]

    def test_delete_with_children_rejected(self, db_session, actor, section):
        parent = self._create(db_session, actor, section)
        self._create(db_session, actor, section, parent=parent)
        with pytest.raises(StateError) as exc:
            Categories().delete(db_session, parent.id, actor)
        assert exc.value.detail == "Category has children"

    def test_delete_with_files_rejected(self, db_session, actor, section, category):
        db_session.add(
            FileItem(section_id=section.id, category_id=category.id, created_by=actor.id)
        )
        db_session.commit()
        with pytest.raises(StateError) as exc:
            Categories().delete(db_session, category.id, actor)
        assert exc.value.detail == "Category has files"

    def test_delete_leaf_removes_translations(self, db_session, actor, category):
        category_id = category.id
        Categories().delete(db_session, category_id, actor)
        assert db_session.get(Category, category_id) is None
        assert db_session.query(CategoryTranslation).count() == 0
