"""
Tests for exception translation.
"""

import asyncio

import pytest
from sqlalchemy.exc import InvalidRequestError

from exceptions import DatabaseError, EntityNotFoundError
from utils.error_handlers import translate_errors
from sample_models import Person


@translate_errors("load")
def fail_with(error):
    raise error


@translate_errors("load")
async def fail_with_async(error):
    raise error


def test_sqlalchemy_error_translated():
    original = InvalidRequestError("boom")

    with pytest.raises(DatabaseError) as exc_info:
        fail_with(original)

    assert exc_info.value.message == "boom"
    assert exc_info.value.details == {"operation": "load"}
    assert exc_info.value.__cause__ is original


def test_dao_error_passes_through():
    error = EntityNotFoundError(Person, 3)

    with pytest.raises(EntityNotFoundError) as exc_info:
        fail_with(error)

    assert exc_info.value is error


def test_other_errors_pass_through():
    with pytest.raises(ValueError):
        fail_with(ValueError("bad argument"))


def test_async_translation():
    with pytest.raises(DatabaseError):
        asyncio.run(fail_with_async(InvalidRequestError("boom")))


def test_return_value_kept():
    @translate_errors("count")
    def count():
        return 3

    assert count() == 3
    assert count.__name__ == "count"
