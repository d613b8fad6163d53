"""Result fields (projections) of a search."""

from dataclasses import dataclass
from typing import Optional

from constants import ROOT_PROPERTY
from domain.value_objects import FieldOperator


@dataclass(frozen=True)
class Field:
    """
    A value selected by a search instead of the root entity.

    ``property`` is a property path; the empty path selects the root entity
    itself. ``key`` names the value in MAP result mode.
    """

    property: str = ROOT_PROPERTY
    operator: FieldOperator = FieldOperator.PROPERTY
    key: Optional[str] = None

    def result_key(self) -> str:
        """Key of this field in MAP result mode."""
        return self.key if self.key is not None else self.property
