"""Common Pydantic bases for tapgrid models.

``TapgridBaseModel`` is the mutable-but-validated base used by the
configuration layers and requests. ``TapgridValueModel`` freezes it for
values that are shared between threads (grid specs, votes, cell records).
"""

from pydantic import BaseModel, ConfigDict


class TapgridBaseModel(BaseModel):
    """Strict base: unknown keys rejected, assignments re-validated."""

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )


class TapgridValueModel(TapgridBaseModel):
    """Immutable, hashable value object."""

    model_config = ConfigDict(frozen=True)
