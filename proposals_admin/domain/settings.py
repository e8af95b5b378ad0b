"""Per-component settings read from ``Component.settings``."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ComponentSettings(BaseModel):
    """
    Settings of a proposals component.

    Unknown keys are ignored so components can carry settings owned by
    other parts of the platform.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    official_proposals_enabled: bool = True
    creation_enabled: bool = True
    geocoding_enabled: bool = False
    attachments_allowed: bool = False
    answers_enabled: bool = True
    publish_answers_immediately: bool = True
    proposal_answering_enabled: bool = True
    title_min_length: int = Field(default=15, ge=1)
    title_max_length: int = Field(default=150, ge=1)
    body_min_length: int = Field(default=15, ge=0)

    @classmethod
    def from_raw(cls, raw: dict[str, Any] | None) -> "ComponentSettings":
        return cls.model_validate(raw or {})
