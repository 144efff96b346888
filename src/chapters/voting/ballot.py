"""Ranked ballots and their point weights."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, model_validator

FIRST_CHOICE_POINTS = 3
SECOND_CHOICE_POINTS = 2
THIRD_CHOICE_POINTS = 1


class Ballot(BaseModel):
    """One member's first, second and third choice for a cycle.

    All three choices are required and must be different suggestions.
    """

    model_config = ConfigDict(frozen=True)

    first_choice: uuid.UUID
    second_choice: uuid.UUID
    third_choice: uuid.UUID

    @model_validator(mode="after")
    def _distinct_choices(self) -> Ballot:
        choices = {self.first_choice, self.second_choice, self.third_choice}
        if len(choices) != 3:
            raise ValueError("Please select different books for each choice.")
        return self

    def weighted_choices(self) -> list[tuple[uuid.UUID, int]]:
        """Suggestion ids paired with the points each receives."""
        return [
            (self.first_choice, FIRST_CHOICE_POINTS),
            (self.second_choice, SECOND_CHOICE_POINTS),
            (self.third_choice, THIRD_CHOICE_POINTS),
        ]
