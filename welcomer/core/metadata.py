"""Frontmatter validation: ParseResult into ChannelData."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator

from welcomer.core.errors import TemplateMetadataError
from welcomer.core.types import ChannelData, ParseResult


class TemplateMetadata(BaseModel):
    """Frontmatter keys understood by the publisher.

    Unknown keys are kept so templates can carry their own notes.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    channel: StrictStr
    sender_name: StrictStr | None = Field(default=None, alias="senderName")
    sender_image: StrictStr | None = Field(default=None, alias="senderImage")

    @field_validator("sender_name", "sender_image", mode="before")
    @classmethod
    def _reject_null(cls, value: object) -> object:
        # Absent keys fall back to the guild; an explicit null is an error
        if value is None:
            raise ValueError("must be a string")
        return value


def build_channel_data(result: ParseResult) -> ChannelData:
    """Validate a template's frontmatter and attach it to its messages.

    Raises:
        TemplateMetadataError: A key is missing or not a string.
    """
    try:
        meta = TemplateMetadata.model_validate(dict(result.metadata))
    except ValidationError as e:
        raise TemplateMetadataError(
            "Failed to parse template!",
            _describe(e),
            file=result.source_path,
        ) from e

    return ChannelData(
        source_path=result.source_path,
        file_name=result.file_name,
        channel_id=meta.channel,
        messages=result.messages,
        sender_name=meta.sender_name,
        sender_image=meta.sender_image,
    )


def _describe(error: ValidationError) -> str:
    """Annotation for the first validation problem."""
    first = error.errors()[0]
    key = str(first["loc"][0]) if first["loc"] else "?"
    if first["type"] == "missing" or (first.get("input", "") is None and _is_required(key)):
        return f"Frontmatter key `{key}` is missing!"
    return f"Frontmatter key `{key}` must be a string!"


def _is_required(key: str) -> bool:
    for name, field in TemplateMetadata.model_fields.items():
        if key in (name, field.alias):
            return field.is_required()
    return False
