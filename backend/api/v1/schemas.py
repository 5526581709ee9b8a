"""
Shared request schema bases for the v1 routers.
"""

from typing import ClassVar

from pydantic import BaseModel, model_validator


class PatchModel(BaseModel):
    """
    Partial-update body bound to one ORM model.

    Every field is optional, but a field sent as an explicit null must map to
    a nullable column; NOT NULL columns can only be changed, never cleared.
    """

    orm_model: ClassVar[type]

    @model_validator(mode="after")
    def reject_null_required(self):
        columns = self.orm_model.__table__.columns
        cleared = sorted(
            field
            for field in self.model_fields_set
            if getattr(self, field) is None and field in columns and not columns[field].nullable
        )
        if cleared:
            raise ValueError(f"cannot be null: {', '.join(cleared)}")
        return self
