import uuid

import pytest

from app.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.library import (
    AccessType,
    FileAccessDepartment,
    FileAccessUser,
    FileItem,
)
from app.services import authz
from app.services.access import (
    GrantRequest,
    access_options,
    assert_can_read,
    can_read,
    department_scope,
    granting_departments,
    normalize_grant_request,
)
from app.services.authz import Actor, actor_from_person


def _make_item(db_session, section, category, creator, access_type=AccessType.restricted):
    item = FileItem(
        section_id=section.id,
        category_id=category.id,
        access_type=access_type,
        created_by=creator.id,
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


def _grant_department(db_session, item, department):
    db_session.add(FileAccessDepartment(file_item_id=item.id, department_id=department.id))
    db_session.commit()


def _grant_user(db_session, item, person):
    db_session.add(FileAccessUser(file_item_id=item.id, person_id=person.id))
    db_session.commit()


@pytest.fixture()
def org(make_department):
    """Root with two branches: root -> a -> a1, root -> b."""
    root = make_department("Root")
    a = make_department("A", parent=root)
    a1 = make_department("A1", parent=a)
    b = make_department("B", parent=root)
    return {"root": root, "a": a, "a1": a1, "b": b}


class TestDepartmentScope:
    def test_none_department_has_empty_scope(self, db_session):
        assert department_scope(db_session, None) == set()

    def test_scope_covers_subtree(self, db_session, org):
        assert department_scope(db_session, org["a"].id) == {org["a"].id, org["a1"].id}

    def test_leaf_scope_is_itself(self, db_session, org):
        assert department_scope(db_session, org["a1"].id) == {org["a1"].id}

    def test_granting_departments_walk_upward(self, db_session, org):
        assert granting_departments(db_session, org["a1"].id) == {
            org["a1"].id,
            org["a"].id,
            org["root"].id,
        }
        assert granting_departments(db_session, None) == set()


class TestCanRead:
    def test_public_is_readable_by_anyone(
        self, db_session, section, category, person, make_person, reader_for
    ):
        item = _make_item(db_session, section, category, person, AccessType.public)
        stranger = make_person()
        assert can_read(db_session, reader_for(stranger), item) is True

    def test_department_grant_reaches_descendants(
        self, db_session, section, category, person, make_person, reader_for, org
    ):
        item = _make_item(db_session, section, category, person)
        _grant_department(db_session, item, org["a"])

        in_a1 = make_person(org["a1"])
        assert can_read(db_session, reader_for(in_a1), item) is True

    def test_department_grant_does_not_reach_ancestors(
        self, db_session, section, category, person, make_person, reader_for, org
    ):
        item = _make_item(db_session, section, category, person)
        _grant_department(db_session, item, org["a1"])

        in_a = make_person(org["a"])
        in_root = make_person(org["root"])
        assert can_read(db_session, reader_for(in_a), item) is False
        assert can_read(db_session, reader_for(in_root), item) is False

    def test_grant_on_parent_reaches_children_not_ancestors(
        self, db_session, section, category, person, make_person, reader_for, org
    ):
        item = _make_item(db_session, section, category, person)
        _grant_department(db_session, item, org["a"])

        assert can_read(db_session, reader_for(make_person(org["a"])), item) is True
        assert can_read(db_session, reader_for(make_person(org["a1"])), item) is True
        assert can_read(db_session, reader_for(make_person(org["root"])), item) is False

    def test_department_grant_does_not_reach_siblings(
        self, db_session, section, category, person, make_person, reader_for, org
    ):
        item = _make_item(db_session, section, category, person)
        _grant_department(db_session, item, org["a"])

        in_b = make_person(org["b"])
        assert can_read(db_session, reader_for(in_b), item) is False

    def test_user_grant(self, db_session, section, category, person, make_person, reader_for):
        item = _make_item(db_session, section, category, person)
        grantee = make_person()
        other = make_person()
        _grant_user(db_session, item, grantee)

        assert can_read(db_session, reader_for(grantee), item) is True
        assert can_read(db_session, reader_for(other), item) is False

    def test_override_capability_reads_everything(
        self, db_session, section, category, person, make_person
    ):
        item = _make_item(db_session, section, category, person)
        auditor = actor_from_person(make_person(), {authz.FILE_DOWNLOAD_RESTRICTED})
        assert can_read(db_session, auditor, item) is True

    def test_restricted_without_grants_is_unreadable(
        self, db_session, section, category, person, reader_for
    ):
        item = _make_item(db_session, section, category, person)
        assert can_read(db_session, reader_for(person), item) is False


class TestAssertCanRead:
    def test_missing_item(self, db_session, actor):
        with pytest.raises(NotFoundError) as exc:
            assert_can_read(db_session, actor, None)
        assert exc.value.detail == "File not found"

    def test_trashed_item_is_not_found(self, db_session, section, category, person, actor):
        item = _make_item(db_session, section, category, person, AccessType.public)
        item.trash()
        db_session.commit()
        with pytest.raises(NotFoundError):
            assert_can_read(db_session, actor, item)

    def test_denied(self, db_session, section, category, person, make_person, reader_for):
        item = _make_item(db_session, section, category, person)
        with pytest.raises(ForbiddenError) as exc:
            assert_can_read(db_session, reader_for(make_person()), item)
        assert exc.value.status_code == 403
        assert exc.value.detail == "Access denied"


class TestNormalizeGrantRequest:
    def test_public_drops_targets(self, db_session, org, make_person):
        actor = actor_from_person(make_person(org["a"]))
        grant = normalize_grant_request(
            db_session, actor, "public", [org["a"].id], [actor.id]
        )
        assert grant == GrantRequest(access_type=AccessType.public)
        assert grant.is_restricted is False

    def test_invalid_access_type(self, db_session, actor):
        with pytest.raises(ValidationError) as exc:
            normalize_grant_request(db_session, actor, "secret")
        assert exc.value.detail == "Invalid access type: secret"

    def test_defaults_to_own_department(self, db_session, org, make_person):
        actor = actor_from_person(make_person(org["a"]))
        grant = normalize_grant_request(db_session, actor, "restricted")
        assert grant.department_ids == (org["a"].id,)
        assert grant.user_ids == ()

    def test_defaults_to_self_without_department(self, db_session, make_person):
        actor = actor_from_person(make_person())
        grant = normalize_grant_request(db_session, actor, "restricted")
        assert grant.department_ids == ()
        assert grant.user_ids == (actor.id,)

    def test_descendant_department_allowed(self, db_session, org, make_person):
        actor = actor_from_person(make_person(org["a"]))
        grant = normalize_grant_request(
            db_session, actor, "restricted", [str(org["a1"].id), org["a1"].id]
        )
        assert grant.department_ids == (org["a1"].id,)

    def test_ancestor_department_rejected(self, db_session, org, make_person):
        actor = actor_from_person(make_person(org["a"]))
        with pytest.raises(ValidationError) as exc:
            normalize_grant_request(db_session, actor, "restricted", [org["root"].id])
        assert exc.value.detail == "Department access not allowed"

    def test_sibling_department_rejected(self, db_session, org, make_person):
        actor = actor_from_person(make_person(org["a"]))
        with pytest.raises(ValidationError):
            normalize_grant_request(db_session, actor, "restricted", [org["b"].id])

    def test_user_in_scope_allowed(self, db_session, org, make_person):
        actor = actor_from_person(make_person(org["a"]))
        colleague = make_person(org["a1"])
        grant = normalize_grant_request(
            db_session, actor, "restricted", user_ids=[colleague.id]
        )
        assert grant.user_ids == (colleague.id,)
        assert grant.department_ids == ()

    def test_user_outside_scope_rejected(self, db_session, org, make_person):
        actor = actor_from_person(make_person(org["a"]))
        outsider = make_person(org["b"])
        with pytest.raises(ValidationError) as exc:
            normalize_grant_request(
                db_session, actor, "restricted", user_ids=[outsider.id]
            )
        assert exc.value.detail == "User access not allowed"

    def test_inactive_user_rejected(self, db_session, org, make_person):
        actor = actor_from_person(make_person(org["a"]))
        inactive = make_person(org["a"], is_active=False)
        with pytest.raises(ValidationError):
            normalize_grant_request(
                db_session, actor, "restricted", user_ids=[inactive.id]
            )

    def test_without_department_only_self_allowed(self, db_session, make_person):
        actor = actor_from_person(make_person())
        grant = normalize_grant_request(
            db_session, actor, "restricted", user_ids=[actor.id]
        )
        assert grant.user_ids == (actor.id,)

        with pytest.raises(ValidationError):
            normalize_grant_request(
                db_session, actor, "restricted", user_ids=[uuid.uuid4()]
            )


class TestAccessOptions:
    def test_scope_departments_and_people(self, db_session, org, make_person):
        member = make_person(org["a"])
        below = make_person(org["a1"])
        make_person(org["b"])
        make_person(org["a1"], is_active=False)

        options = access_options(db_session, actor_from_person(member))
        assert options["departments"] == [
            {"id": org["a"].id, "name": "A", "depth": 2},
            {"id": org["a1"].id, "name": "A1", "depth": 3},
        ]
        assert {p["id"] for p in options["people"]} == {member.id, below.id}
        entry = next(p for p in options["people"] if p["id"] == below.id)
        assert entry["login"] == below.login
        assert entry["full_name"] == "Test User"
        assert entry["department_id"] == org["a1"].id

    def test_without_department(self, db_session, make_person):
        loner = make_person()
        options = access_options(db_session, actor_from_person(loner))
        assert options["departments"] == []
        assert [p["login"] for p in options["people"]] == [loner.login]

    def test_unknown_actor_without_department(self, db_session):
        actor = Actor(id=uuid.uuid4())
        assert access_options(db_session, actor) == {
            "departments": [],
            "people": [{"id": actor.id}],
        }
