"""Domain exception hierarchy for the Firon chat application."""

from __future__ import annotations


class FironChatError(RuntimeError):
    """Base class for all domain-level chat errors."""


class GeminiConnectionError(FironChatError):
    """Raised when the generative AI service cannot be reached."""


class GeminiResponseError(FironChatError):
    """Raised when the service answers with an error status or an unusable body."""


class ConfigValidationError(FironChatError):
    """Raised when configuration cannot be validated safely."""


class AttachmentError(FironChatError):
    """Raised when an image selected for upload fails validation."""
