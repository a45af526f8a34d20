# pmdash/schemas/validation.py

from typing import List, Optional

from pydantic import Field

from pmdash.schemas.base import CamelModel


class FieldError(CamelModel):
    field: str
    message: str


class ValidationResult(CamelModel):
    is_valid: bool = True
    errors: List[FieldError] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    def add_error(self, field: str, message: str) -> None:
        self.errors.append(FieldError(field=field, message=message))
        self.is_valid = False

    def field_error(self, field: str) -> Optional[str]:
        for err in self.errors:
            if err.field == field:
                return err.message
        return None
