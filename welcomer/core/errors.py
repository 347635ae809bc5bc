"""Error types raised while parsing templates and delivering messages.

Domain failures derive from AnnotatedError, which carries a short summary
(the exception message), a longer annotation and the template file it
concerns. The entry point turns these into workflow annotations.
"""

from __future__ import annotations


class AnnotatedError(Exception):
    """A failure that can be reported against a template file."""

    def __init__(
        self,
        failure: str,
        annotation: str,
        file: str | None = None,
        channel_id: str | None = None,
    ) -> None:
        super().__init__(failure)
        self.failure = failure
        self.annotation = annotation
        self.file = file
        self.channel_id = channel_id


# === Input errors ===


class TemplateNotFoundError(AnnotatedError):
    """The template path does not point to a readable file."""


class MalformedTemplateError(AnnotatedError):
    """The template has no usable frontmatter block."""


class TemplateMetadataError(AnnotatedError):
    """A frontmatter key is missing or has the wrong type."""


# === Resolution errors ===


class ChannelResolutionError(AnnotatedError):
    """A target channel cannot be used for delivery."""


class ChannelNotFoundError(ChannelResolutionError):
    pass


class WrongChannelTypeError(ChannelResolutionError):
    pass


class ChannelTooOpenError(ChannelResolutionError):
    """@everyone can already send messages in the channel."""


# === Delivery errors ===


class MessageTooLongError(AnnotatedError):
    """A text message cannot be split under the length limit."""


class AttachmentError(AnnotatedError):
    """A local image referenced by a template cannot be read."""


# === Splitter errors ===


class InputTypeError(TypeError):
    """Text input was not a string (or was empty when not allowed)."""


class OversizeFragmentError(ValueError):
    """A fragment is still too long after every boundary was applied."""

    def __init__(self, max_length: int, length: int) -> None:
        super().__init__(
            f"Fragment of {length} characters exceeds the maximum of {max_length}"
        )
        self.max_length = max_length
        self.length = length
