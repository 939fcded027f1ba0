# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Input validation for the HTTP API.

Provides Pydantic request models for each endpoint that takes a body, and
:func:`validate_input`, which converts pydantic failures into the scoring
engine's :class:`errors.ValidationError` naming the failing parameter.
"""

from __future__ import annotations

from typing import Any, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError
from models import FieldingPosition, Lineup, PlateAppearance, SubstitutionType

ModelT = TypeVar("ModelT", bound=BaseModel)


def is_valid_record_id(record_id: str) -> bool:
    return isinstance(record_id, str) and len(record_id.strip()) > 0


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class RecordPlateAppearanceInput(PlateAppearance):
    """Body of ``POST /plate-appearances``."""
    out_runner_ids: list[str] = Field(
        default_factory=list,
        max_length=2,
        description="Runners put out with the batter on a groundout (double/triple play).",
    )

    @field_validator("out_runner_ids")
    @classmethod
    def validate_runner_ids(cls, v: list[str]) -> list[str]:
        for runner_id in v:
            if not is_valid_record_id(runner_id):
                raise ValueError("Runner IDs must be non-empty strings")
        if len(set(v)) != len(v):
            raise ValueError("Runner IDs must be distinct")
        return v


class RunnerMoveInput(BaseModel):
    """Body of ``POST /runners/<id>/steal`` and ``/advance``."""
    to_base: int = Field(ge=1, le=4, description="Target base (4 = home).")


class OpponentRunsInput(BaseModel):
    runs: int = Field(ge=0, description="Runs the opponent scored in their half.")


class SubstitutionInput(BaseModel):
    """Body of ``POST /substitutions``."""
    out_player_id: str = Field(min_length=1, description="Game player leaving the batting order.")
    in_player_id: str = Field(min_length=1, description="Bench player taking over the slot.")
    inning: int = Field(ge=1)
    substitution_type: SubstitutionType = SubstitutionType.PLAYER_CHANGE
    new_position: Optional[FieldingPosition] = Field(
        default=None, description="Defaults to the outgoing player's position.",
    )


class PositionChangeInput(BaseModel):
    position: Optional[FieldingPosition] = None


class SaveLineupInput(BaseModel):
    """Body of ``PUT /lineup``."""
    team_id: str = Field(min_length=1, description="Team whose default template is replaced.")
    lineup: Lineup
    expected_template_version: Optional[int] = Field(
        default=None, ge=0,
        description="Skip the template overwrite if it has changed since this version.",
    )

    @field_validator("team_id")
    @classmethod
    def validate_team_id(cls, v: str) -> str:
        if not is_valid_record_id(v):
            raise ValueError("Team ID must be a non-empty string")
        return v


# ---------------------------------------------------------------------------
# Validation function
# ---------------------------------------------------------------------------

def require_object(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def validate_input(model_cls: type[ModelT], data: Optional[dict[str, Any]]) -> ModelT:
    """Parse *data* into *model_cls*.

    Raises:
        ValidationError: if the body is missing or does not match the model.
    """
    data = require_object(data)
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from None
