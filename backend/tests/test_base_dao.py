"""
Tests for BaseDAO session operations.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from dao import BaseDAO
from exceptions import (
    ConfigurationError,
    DatabaseError,
    EntityNotFoundError,
    MetadataError,
    ValidationError,
)
from search import Search
from sample_models import Membership, NotMapped, Person, Pet, Tag


@pytest.fixture
def dao(session_factory):
    return BaseDAO(session_factory)


def detach(session, *entities):
    """Load the column state of each entity and remove it from the session"""
    for entity in entities:
        session.refresh(entity)
        session.expunge(entity)


class TestConfiguration:
    """Test how the DAO obtains its session"""

    def test_no_session_factory(self):
        dao = BaseDAO()

        with pytest.raises(ConfigurationError):
            dao._get(Person, 1)
        with pytest.raises(ConfigurationError):
            dao.session

    def test_sessionmaker_is_scoped(self, engine):
        dao = BaseDAO(sessionmaker(bind=engine))

        assert isinstance(dao.session_factory, scoped_session)
        assert dao.session is dao.session

    def test_plain_session_used_as_is(self, engine):
        session = Session(bind=engine)
        dao = BaseDAO(session)

        assert dao.session is session
        session.close()

    def test_scoped_session_current_session(self, dao, db_session):
        assert dao.session is db_session

    def test_search_processor_shared_per_factory(self, session_factory):
        first = BaseDAO(session_factory)
        second = BaseDAO(session_factory)

        assert first.search_processor is second.search_processor

    def test_batch_size_from_environment(self, monkeypatch, session_factory):
        monkeypatch.setenv("DAO_EXISTS_BATCH_SIZE", "7")

        assert BaseDAO(session_factory).exists_batch_size == 7


class TestSave:
    """Test save, persist and save-or-update"""

    def test_save_assigns_id(self, dao, db_session):
        person = Person(first_name="Erin", last_name="Green")

        person_id = dao._save(person)

        assert person_id is not None
        assert person_id == person.id
        assert person in db_session

    def test_save_assigned_string_id(self, dao):
        assert dao._save(Tag(name="later", label="Later")) == "later"

    def test_save_null_entity(self, dao):
        with pytest.raises(ValueError):
            dao._save(None)

    def test_save_detached_entity_with_deleted_row(self, dao, db_session, people):
        carol = people["carol"]
        detach(db_session, carol)
        db_session.execute(text("DELETE FROM people WHERE id = :id"), {"id": carol.id})

        assert dao._save(carol) == carol.id
        db_session.expunge_all()

        assert dao._get(Person, carol.id).first_name == "Carol"

    def test_save_many(self, dao):
        first = Person(first_name="Erin", last_name="Green")
        second = Person(first_name="Finn", last_name="Green")

        dao._save_many(first, second)

        assert first.id is not None
        assert second.id is not None
        assert first.id != second.id

    def test_save_constraint_violation_is_translated(self, dao):
        with pytest.raises(DatabaseError) as exc_info:
            dao._save(Person(first_name=None, last_name="Nobody"))

        assert exc_info.value.details["operation"] == "save"
        assert isinstance(exc_info.value.__cause__, IntegrityError)

    def test_persist_defers_insert(self, dao, db_session):
        person = Person(first_name="Erin", last_name="Green")

        dao._persist(person)

        assert person in db_session
        assert person.id is None
        dao._flush()
        assert person.id is not None

    def test_save_or_update_new_entity(self, dao):
        person = Person(first_name="Erin", last_name="Green")

        dao._save_or_update(person)

        assert person.id is not None

    def test_save_or_update_detached_entity(self, dao, db_session, people):
        alice = people["alice"]
        detach(db_session, alice)
        alice.age = 31

        dao._save_or_update(alice)
        dao._flush()
        db_session.expunge_all()

        assert dao._get(Person, alice.id).age == 31

    def test_save_or_update_null_entity(self, dao):
        with pytest.raises(ValueError, match="attempt to saveOrUpdate with null entity"):
            dao._save_or_update(None)


class TestSaveOrUpdateIsNew:
    """Test save-or-update reporting whether the entity was new"""

    def test_null_entity(self, dao):
        with pytest.raises(ValueError, match="attempt to saveOrUpdate with null entity"):
            dao._save_or_update_is_new(None)

    def test_new_entity(self, dao):
        person = Person(first_name="Erin", last_name="Green")

        assert dao._save_or_update_is_new(person) is True
        assert person.id is not None

    def test_entity_in_session(self, dao, people):
        assert dao._save_or_update_is_new(people["alice"]) is False

    def test_detached_entity_is_updated(self, dao, db_session, people):
        bob = people["bob"]
        detach(db_session, bob)
        bob.email = "bob@example.com"

        assert dao._save_or_update_is_new(bob) is False
        dao._flush()
        db_session.expunge_all()

        assert dao._get(Person, bob.id).email == "bob@example.com"

    def test_transient_copy_updates_only_set_columns(self, dao, db_session, people):
        alice_id = people["alice"].id
        db_session.expunge_all()

        copy = Person(id=alice_id, age=31)
        assert dao._save_or_update_is_new(copy) is False
        dao._flush()
        db_session.expunge_all()

        alice = dao._get(Person, alice_id)
        assert alice.age == 31
        assert alice.first_name == "Alice"
        assert alice.email == "alice@example.com"

    def test_transient_with_unknown_id_is_saved(self, dao, db_session, people):
        person = Person(id=99, first_name="Erin", last_name="Green")

        assert dao._save_or_update_is_new(person) is True
        db_session.expunge_all()

        assert dao._get(Person, 99).first_name == "Erin"

    def test_detached_entity_with_deleted_row_is_saved(self, dao, db_session, people):
        carol = people["carol"]
        detach(db_session, carol)
        db_session.execute(text("DELETE FROM people WHERE id = :id"), {"id": carol.id})

        assert dao._save_or_update_is_new(carol) is True
        dao._flush()
        db_session.expunge_all()

        assert dao._get(Person, carol.id).first_name == "Carol"

    def test_conflicting_identity(self, dao, people):
        copy = Person(id=people["alice"].id, age=31)

        with pytest.raises(DatabaseError):
            dao._save_or_update_is_new(copy)


class TestSaveOrUpdateIsNewMany:
    """Test the batched save-or-update"""

    def test_mixed_entities(self, dao, db_session, people, memberships):
        carol = people["carol"]
        detach(db_session, people["bob"])
        bob = people["bob"]
        db_session.expunge_all()
        db_session.add(carol)

        bob.age = 46
        entities = [
            Person(first_name="Erin", last_name="Green"),
            bob,
            carol,
            Tag(name="urgent", label="Very urgent"),
            Tag(name="fresh", label="Fresh"),
            Membership(person_id=1, group_name="chess", role="president"),
            Membership(person_id=3, group_name="chess", role="member"),
        ]

        result = dao._save_or_update_is_new_many(*entities)

        assert result == [True, False, False, False, True, False, True]
        dao._flush()
        db_session.expunge_all()
        assert dao._get(Person, bob.id).age == 46
        assert dao._get(Tag, "urgent").label == "Very urgent"
        assert dao._get(Tag, "fresh") is not None
        assert dao._get(Membership, (1, "chess")).role == "president"
        assert dao._get(Membership, (3, "chess")) is not None

    def test_detached_entities_with_deleted_rows_are_saved(self, dao, db_session, people):
        carol, dave = people["carol"], people["dave"]
        detach(db_session, carol, dave)
        db_session.execute(text("DELETE FROM people WHERE id = :id"), {"id": dave.id})
        carol.age = 23

        assert dao._save_or_update_is_new_many(carol, dave) == [False, True]
        dao._flush()
        db_session.expunge_all()

        assert dao._get(Person, carol.id).age == 23
        assert dao._get(Person, dave.id).first_name == "Dave"

    def test_small_batches(self, dao, db_session, memberships):
        db_session.expunge_all()
        dao.exists_batch_size = 1
        entities = [
            Membership(person_id=1, group_name="chess", role="a"),
            Membership(person_id=9, group_name="chess", role="b"),
            Membership(person_id=1, group_name="choir", role="c"),
        ]

        assert dao._save_or_update_is_new_many(*entities) == [False, True, False]

    def test_null_entity(self, dao):
        with pytest.raises(ValueError, match="attempt to saveOrUpdate with null entity"):
            dao._save_or_update_is_new_many(Person(first_name="A", last_name="B"), None)

    def test_empty(self, dao):
        assert dao._save_or_update_is_new_many() == []


class TestDelete:
    """Test delete operations"""

    def test_delete_by_id(self, dao, people):
        dave_id = people["dave"].id

        assert dao._delete_by_id(Person, dave_id) is True
        dao._flush()
        assert dao._get(Person, dave_id) is None

    def test_delete_by_id_missing(self, dao, people):
        assert dao._delete_by_id(Person, 999) is False

    def test_delete_by_id_null(self, dao):
        assert dao._delete_by_id(Person, None) is False

    def test_delete_by_ids(self, dao, people):
        pet_ids = [pet.id for pet in people["alice"].pets]

        dao._delete_by_ids(Pet, *pet_ids, 999, None)
        dao._flush()

        assert dao._count_all(Pet) == 1

    def test_delete_by_ids_composite(self, dao, memberships):
        dao._delete_by_ids(Membership, (1, "chess"), (2, "chess"))
        dao._flush()

        remaining = dao._all(Membership)
        assert [(m.person_id, m.group_name) for m in remaining] == [(1, "choir")]

    def test_delete_detached_entity(self, dao, db_session, people):
        dave = people["dave"]
        detach(db_session, dave)

        assert dao._delete_entity(dave) is True
        dao._flush()
        assert dao._get(Person, dave.id) is None

    def test_delete_entity_without_id(self, dao):
        assert dao._delete_entity(Person(first_name="Erin", last_name="Green")) is False

    def test_delete_null_entity(self, dao):
        assert dao._delete_entity(None) is False

    def test_delete_entities(self, dao, people):
        dao._delete_entities(people["carol"], None, people["dave"])
        dao._flush()

        assert dao._count_all(Person) == 2


class TestGetAndLoad:
    """Test get, load and all"""

    def test_get(self, dao, people):
        assert dao._get(Person, people["alice"].id) is people["alice"]

    def test_get_missing(self, dao, people):
        assert dao._get(Person, 999) is None

    def test_get_null_id(self, dao):
        assert dao._get(Person, None) is None

    def test_get_composite(self, dao, memberships):
        assert dao._get(Membership, (1, "choir")).role == "lead"

    def test_get_unmapped_type(self, dao):
        with pytest.raises(MetadataError):
            dao._get(NotMapped, 1)

    def test_get_many(self, dao, people):
        alice, carol = people["alice"], people["carol"]

        result = dao._get_many(Person, carol.id, 999, None, alice.id, carol.id)

        assert result == [carol, None, None, alice, carol]

    def test_get_many_composite(self, dao, memberships):
        result = dao._get_many(Membership, (2, "chess"), (2, "choir"), [1, "chess"])

        assert result[0].role == "captain"
        assert result[1] is None
        assert result[2].role == "member"

    def test_load_missing(self, dao, people):
        with pytest.raises(EntityNotFoundError) as exc_info:
            dao._load(Person, 999)

        assert exc_info.value.details == {"type": "Person", "id": 999}

    def test_load_many(self, dao, people):
        bob = people["bob"]

        assert dao._load_many(Person, bob.id, None) == [bob, None]

    def test_load_many_missing(self, dao, people):
        with pytest.raises(EntityNotFoundError):
            dao._load_many(Person, people["bob"].id, 999)

    def test_load_into(self, dao, db_session, people):
        target = Person()

        dao._load_into(target, people["carol"].id)

        assert target.first_name == "Carol"
        assert target.age == 22
        assert target not in db_session

    def test_all(self, dao, people):
        names = sorted(person.first_name for person in dao._all(Person))

        assert names == ["Alice", "Bob", "Carol", "Dave"]


class TestUpdateAndMerge:
    """Test update, merge and refresh"""

    def test_update_transient_without_id(self, dao):
        with pytest.raises(ValidationError):
            dao._update(Person(first_name="Erin", last_name="Green"))

    def test_update_null_entity(self, dao):
        with pytest.raises(ValueError):
            dao._update(None)

    def test_update_reattaches(self, dao, db_session, people):
        carol, dave = people["carol"], people["dave"]
        detach(db_session, carol, dave)
        carol.age = 23
        dave.email = "dave@example.com"

        dao._update(carol, dave)

        assert dao._session_contains(carol)
        assert dao._session_contains(dave)
        dao._flush()
        db_session.expunge_all()
        assert dao._get(Person, carol.id).age == 23
        assert dao._get(Person, dave.id).email == "dave@example.com"

    def test_merge(self, dao, db_session, people):
        alice_id = people["alice"].id
        copy = Person(id=alice_id, first_name="Alicia", last_name="Smith")

        merged = dao._merge(copy)

        assert merged is people["alice"]
        assert merged is not copy
        assert merged.first_name == "Alicia"
        assert copy not in db_session

    def test_refresh(self, dao, db_session, people):
        alice = people["alice"]
        assert alice.age == 30
        db_session.execute(text("UPDATE people SET age = 50 WHERE id = :id"), {"id": alice.id})

        dao._refresh(alice)

        assert alice.age == 50

    def test_session_contains(self, dao, people):
        assert dao._session_contains(people["alice"]) is True
        assert dao._session_contains(Person(first_name="A", last_name="B")) is False
        assert dao._session_contains(None) is False


class TestExists:
    """Test existence checks"""

    def test_exists_in_session(self, dao, people):
        assert dao._exists(people["alice"]) is True

    def test_exists_detached(self, dao, db_session, people):
        bob = people["bob"]
        detach(db_session, bob)

        assert dao._exists(bob) is True

    def test_exists_new_entity(self, dao):
        assert dao._exists(Person(first_name="A", last_name="B")) is False

    def test_exists_by_id(self, dao, people):
        assert dao._exists_by_id(Person, people["carol"].id) is True
        assert dao._exists_by_id(Person, 999) is False
        assert dao._exists_by_id(Person, None) is False

    def test_exists_by_id_null_type(self, dao):
        with pytest.raises(ValueError, match="Type is null."):
            dao._exists_by_id(None, 1)

    def test_exists_many_flags_duplicates(self, dao, people):
        alice_id = people["alice"].id

        result = dao._exists_many(Person, alice_id, 999, alice_id, None)

        assert result == [True, False, True, False]

    def test_exists_many_composite_in_batches(self, dao, memberships):
        dao.exists_batch_size = 2

        result = dao._exists_many(
            Membership, (1, "chess"), (1, "golf"), (2, "chess"), (1, "choir"), (1, "chess")
        )

        assert result == [True, False, True, True, True]

    def test_exists_many_string_ids(self, dao, memberships):
        assert dao._exists_many(Tag, "urgent", "missing") == [True, False]


class TestSearchValidation:
    """Test argument checks shared by the search operations"""

    def test_null_search(self, dao):
        with pytest.raises(ValueError, match="Search is null."):
            dao._search(None)

    def test_missing_search_class(self, dao):
        with pytest.raises(ValueError, match="Search class is null."):
            dao._count(Search())

    def test_mismatched_search_class(self, dao):
        with pytest.raises(ValueError, match="Search class does not match expected type: Person"):
            dao._search_and_count(Search(Pet), Person)

    def test_explicit_search_class(self, dao, people):
        assert dao._count(Search(), Person) == 4
        assert dao._count(Search(Person), Person) == 4
