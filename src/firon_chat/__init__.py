"""Top-level package for firon-chat."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .app import FironChatApp
    from .client import GeminiClient
    from .config import ensure_config_dir, load_config
    from .controller import ConversationController
    from .exceptions import (
        AttachmentError,
        ConfigValidationError,
        FironChatError,
        GeminiConnectionError,
        GeminiResponseError,
    )
    from .message_log import Message, MessageLog, Sender
    from .state import Mode, SessionState

__all__ = [
    "AttachmentError",
    "ConfigValidationError",
    "ConversationController",
    "FironChatApp",
    "FironChatError",
    "GeminiClient",
    "GeminiConnectionError",
    "GeminiResponseError",
    "Message",
    "MessageLog",
    "Mode",
    "Sender",
    "SessionState",
    "ensure_config_dir",
    "load_config",
]

_EXCEPTION_NAMES = {
    "AttachmentError",
    "ConfigValidationError",
    "FironChatError",
    "GeminiConnectionError",
    "GeminiResponseError",
}


def __getattr__(name: str) -> Any:
    """Lazily import symbols to keep the UI dependency optional at import time."""
    if name == "FironChatApp":
        from .app import FironChatApp

        return FironChatApp
    if name == "GeminiClient":
        from .client import GeminiClient

        return GeminiClient
    if name == "ConversationController":
        from .controller import ConversationController

        return ConversationController
    if name in {"ensure_config_dir", "load_config"}:
        from . import config

        return getattr(config, name)
    if name in _EXCEPTION_NAMES:
        from . import exceptions

        return getattr(exceptions, name)
    if name in {"Message", "MessageLog", "Sender"}:
        from . import message_log

        return getattr(message_log, name)
    if name in {"Mode", "SessionState"}:
        from . import state

        return getattr(state, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
