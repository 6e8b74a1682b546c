"""Session state containers for the conversation controller."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class Mode(str, Enum):
    """Interaction mode selected by the user."""

    CHAT = "chat"
    IMAGE = "image"


TEXT_REFINE_OPTIONS: dict[str, tuple[str, ...]] = {
    "length": ("shorter", "longer"),
    "clarity": ("more concise", "more detailed"),
    "tone": ("more casual", "more professional"),
}

IMAGE_REFINE_OPTIONS: dict[str, tuple[str, ...]] = {
    "style": ("realistic", "drawn cartoon", "3d cartoon"),
    "blur": ("blurry background", "blurry foreground"),
}

REFINE_OPTIONS: dict[str, tuple[str, ...]] = {
    **TEXT_REFINE_OPTIONS,
    **IMAGE_REFINE_OPTIONS,
}

CHAT_SUGGESTIONS: tuple[str, ...] = (
    "Tell me a joke.",
    "Give me a good dessert recipe.",
    "Provide a riddle.",
)

IMAGE_SUGGESTIONS: tuple[str, ...] = (
    "A dog eating vanilla ice cream with dog treats.",
    "Homer Simpson bowling in a bowling alley.",
    "School of fish swimming in a coral reef.",
)


@dataclass
class RefineSelection:
    """Option picks made in the refine menu; each field is independent."""

    length: str | None = None
    clarity: str | None = None
    tone: str | None = None
    style: str | None = None
    blur: str | None = None

    def select(self, option: str, value: str | None) -> None:
        """Pick ``value`` for ``option``; picking the current value again unselects it."""
        allowed = REFINE_OPTIONS.get(option)
        if allowed is None:
            raise ValueError(f"Unknown refinement option {option!r}.")
        if value is not None and value not in allowed:
            raise ValueError(f"Unsupported value {value!r} for {option}.")
        if value is not None and getattr(self, option) == value:
            value = None
        setattr(self, option, value)

    def reset_text(self) -> None:
        self.length = None
        self.clarity = None
        self.tone = None

    def reset_image(self) -> None:
        self.style = None
        self.blur = None

    def clear(self) -> None:
        self.reset_text()
        self.reset_image()

    def has_text_option(self) -> bool:
        return any((self.length, self.clarity, self.tone))

    def has_image_option(self) -> bool:
        return any((self.style, self.blur))

    def is_empty(self) -> bool:
        return not (self.has_text_option() or self.has_image_option())


@dataclass
class LoadingFlags:
    """Independent in-flight markers, one per kind of outbound request."""

    chat: bool = False
    image_generation: bool = False
    analysis: bool = False

    def any_active(self) -> bool:
        return self.chat or self.image_generation or self.analysis

    def clear(self) -> None:
        self.chat = False
        self.image_generation = False
        self.analysis = False


@dataclass
class SessionState:
    """Ephemeral per-session state owned by the conversation controller."""

    input_text: str = ""
    mode: Mode = Mode.CHAT
    editing_id: int | None = None
    refine_target_id: int | None = None
    show_refine_menu: bool = False
    refine: RefineSelection = field(default_factory=RefineSelection)
    attached_image: str | None = None
    loading: LoadingFlags = field(default_factory=LoadingFlags)

    @classmethod
    def initial(cls) -> SessionState:
        return cls()

    def close_refine(self) -> None:
        """Hide the refine menu and drop the target and every selection."""
        self.show_refine_menu = False
        self.refine_target_id = None
        self.refine.clear()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["mode"] = self.mode.value
        return data
