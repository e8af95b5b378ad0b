"""
Form object base class.

Forms are pydantic models for the shape of the input plus an async
``validate_form`` step for the rules that need the request context (database
lookups, component settings, geocoding). Validation errors are collected
per attribute instead of raised, so commands can answer ``invalid`` and the
API can re-render the form with its errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, PrivateAttr

if TYPE_CHECKING:
    from proposals_admin.domain.context import AdminContext

BLANK = "can't be blank"
INVALID = "is invalid"


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


class Form(BaseModel):
    """Base class for every admin form."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    _errors: dict[str, list[str]] = PrivateAttr(default_factory=dict)

    @property
    def errors(self) -> dict[str, list[str]]:
        return self._errors

    def add_error(self, attribute: str, message: str) -> None:
        self._errors.setdefault(attribute, []).append(message)

    @property
    def valid(self) -> bool:
        return not self._errors

    async def validate_form(self, context: AdminContext) -> bool:
        """Run every validation against ``context``.

        Returns:
            True when the form has no errors
        """
        self._errors = {}
        await self.run_validations(context)
        return self.valid

    async def run_validations(self, context: AdminContext) -> None:
        """Hook for subclasses; add errors with ``add_error``."""

    def validate_presence(self, attribute: str) -> bool:
        if is_blank(getattr(self, attribute)):
            self.add_error(attribute, BLANK)
            return False
        return True

    def validate_length(
        self, attribute: str, *, minimum: int | None = None, maximum: int | None = None
    ) -> None:
        value = getattr(self, attribute) or ""
        if minimum is not None and len(value) < minimum:
            self.add_error(attribute, f"is too short (minimum is {minimum} characters)")
        if maximum is not None and len(value) > maximum:
            self.add_error(attribute, f"is too long (maximum is {maximum} characters)")
