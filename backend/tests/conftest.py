import sys
from pathlib import Path

# Add backend directory to Python path FIRST
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Now import after path is set
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from dao import GeneralDAO, GenericDAO
from sample_models import Address, Membership, Person, Pet, Tag


@pytest.fixture
def engine():
    """In-memory database shared by every connection of the test"""
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Scoped session handed to the DAOs as their current session"""
    factory = scoped_session(sessionmaker(bind=engine))
    yield factory
    factory.remove()


@pytest.fixture
def db_session(session_factory):
    return session_factory()


@pytest.fixture
def person_dao(session_factory):
    return GenericDAO(Person, session_factory)


@pytest.fixture
def pet_dao(session_factory):
    return GenericDAO(Pet, session_factory)


@pytest.fixture
def general_dao(session_factory):
    return GeneralDAO(session_factory)


@pytest.fixture
def people(db_session):
    """
    Four people, two addresses and three pets:

    - Alice Smith, 30, Springfield, owns Rex (dog) and Tom (cat)
    - Bob Smith, 45, no email, Shelbyville, owns Fido (dog)
    - Carol Jones, 22, Springfield, no pets
    - Dave Brown, no age, no address, no pets
    """
    springfield = Address(street="Main St", city="Springfield")
    shelbyville = Address(street="Elm St", city="Shelbyville")

    alice = Person(first_name="Alice", last_name="Smith", age=30,
                   email="alice@example.com", address=springfield)
    bob = Person(first_name="Bob", last_name="Smith", age=45, address=shelbyville)
    carol = Person(first_name="Carol", last_name="Jones", age=22,
                   email="carol@example.com", address=springfield)
    dave = Person(first_name="Dave", last_name="Brown")

    alice.pets = [Pet(name="Rex", species="dog"), Pet(name="Tom", species="cat")]
    bob.pets = [Pet(name="Fido", species="dog")]

    db_session.add_all([alice, bob, carol, dave])
    db_session.commit()
    return {"alice": alice, "bob": bob, "carol": carol, "dave": dave}


@pytest.fixture
def memberships(db_session):
    rows = [
        Membership(person_id=1, group_name="chess", role="member"),
        Membership(person_id=1, group_name="choir", role="lead"),
        Membership(person_id=2, group_name="chess", role="captain"),
    ]
    db_session.add_all(rows)
    db_session.add(Tag(name="urgent", label="Urgent"))
    db_session.commit()
    return rows
