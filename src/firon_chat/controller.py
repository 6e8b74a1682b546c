"""Conversation controller: message log, session state, and request sequencing.

The controller is the only writer of the message log. Every user intent from
the presentation layer arrives here as an ``async`` method call; every change
is announced on the event bus so the UI can re-render.

Outbound requests are awaited inline. Each request path ends in one of the
``complete_*`` methods, which always clear the matching loading flag, and
which turn any failure into a fixed fallback message instead of raising.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import dataclasses
from datetime import datetime
import logging
from typing import Any

from .client import AIServiceClient
from .events import CONVERSATION_CHANGED, NOTICE, SESSION_CHANGED, EventBus
from .message_log import IdSequence, Message, MessageLog, Sender, Turn
from .state import (
    CHAT_SUGGESTIONS,
    IMAGE_SUGGESTIONS,
    Mode,
    RefineSelection,
    SessionState,
)

LOGGER = logging.getLogger(__name__)

FALLBACK_CHAT_TEXT = "I'm sorry, I couldn't get a response."
FALLBACK_ANALYSIS_TEXT = "I'm sorry, I couldn't analyze the image."
PLACEHOLDER_IMAGE_URL = "https://placehold.co/400x300/CCCCCC/FFFFFF?text=Image+Failed"

NOTICE_SELECT_IMAGE_OPTION = "Please select at least one image refinement option."
NOTICE_NO_TEXT_OPTION = "No refinement options selected."
NOTICE_IMAGE_NOT_REFINABLE = "This image has no prompt to refine."
NOTICE_COPIED = "Message copied!"
NOTICE_CLIPBOARD_UNAVAILABLE = "Clipboard unavailable."
NOTICE_REPLY = "Input prepared for reply."
NOTICE_EDITING = "Editing message. Send to confirm."
NOTICE_IMAGE_ATTACHED = "Image uploaded for analysis. Type your prompt and send."
NOTICE_NEW_CHAT = "New chat started!"

REPLY_LABEL = "Replying to: "

RequestResult = Any  # str | bytes payload on success, an exception on failure

# Marks a submit_input argument that should come from the session state.
_UNSET: Any = object()


def build_image_refinement_prompt(base_prompt: str, selection: RefineSelection) -> str:
    """Append the chosen style and blur to the original image prompt."""
    prompt = base_prompt
    if selection.style:
        prompt += f", in a {selection.style} style"
    if selection.blur:
        prompt += f", with a {selection.blur}"
    return prompt


def build_text_refinement_instruction(selection: RefineSelection) -> str:
    """Join selected text options in length, clarity, tone order."""
    instruction = ""
    if selection.length:
        instruction += f"make it {selection.length}. "
    if selection.clarity:
        instruction += f"make it {selection.clarity}. "
    if selection.tone:
        instruction += f"make the tone {selection.tone}. "
    return instruction.strip()


def build_text_refinement_prompt(instruction: str, text: str) -> str:
    return f'Refine the following text by "{instruction}":\n\n"{text}"'


def image_caption(prompt: str, selection: RefineSelection | None = None) -> str:
    caption = f'Generated image for: "{prompt}"'
    if selection is not None:
        if selection.style:
            caption += f" (Style: {selection.style})"
        if selection.blur:
            caption += f" (Blur: {selection.blur})"
    return caption


def _usable_text(result: RequestResult) -> str | None:
    if isinstance(result, BaseException):
        return None
    if not isinstance(result, str) or not result.strip():
        return None
    return result


def _failure_reason(result: RequestResult) -> str:
    if isinstance(result, BaseException):
        return f"{type(result).__name__}: {result}"
    return "empty result"


class ConversationController:
    """Own the message log and session state for one chat session."""

    def __init__(
        self,
        client: AIServiceClient,
        *,
        bus: EventBus | None = None,
        clipboard: Callable[[str], Any] | None = None,
        clock: Callable[[], datetime] | None = None,
        id_sequence: IdSequence | None = None,
        notice_seconds: float = 3.0,
        reply_excerpt_chars: int = 50,
    ) -> None:
        self.client = client
        self.bus = bus or EventBus()
        self.clipboard = clipboard
        self._clock = clock or datetime.now
        self._ids = id_sequence or IdSequence()
        self.notice_seconds = notice_seconds
        self.reply_excerpt_chars = max(1, reply_excerpt_chars)
        self.log = MessageLog()
        self.state = SessionState.initial()

    @property
    def messages(self) -> list[Message]:
        return self.log.messages

    @property
    def is_busy(self) -> bool:
        return self.state.loading.any_active()

    @property
    def refine_target(self) -> Message | None:
        return self.log.get(self.state.refine_target_id)

    def suggestions(self) -> tuple[str, ...]:
        return CHAT_SUGGESTIONS if self.state.mode is Mode.CHAT else IMAGE_SUGGESTIONS

    def _timestamp(self) -> str:
        return self._clock().strftime("%H:%M:%S")

    async def _conversation_changed(self) -> None:
        await self.bus.publish(
            CONVERSATION_CHANGED, {"count": len(self.log)}, source="controller"
        )

    async def _session_changed(self) -> None:
        await self.bus.publish(
            SESSION_CHANGED, {"state": self.state.to_dict()}, source="controller"
        )

    async def notify(self, text: str) -> None:
        """Publish a transient informational notice."""
        await self.bus.publish(
            NOTICE, {"text": text, "seconds": self.notice_seconds}, source="controller"
        )

    # Input and session bookkeeping

    async def set_input(self, text: str) -> None:
        self.state.input_text = text
        await self._session_changed()

    async def apply_suggestion(self, suggestion: str) -> None:
        await self.set_input(suggestion)

    async def switch_mode(self, mode: Mode | str) -> None:
        """Change mode and drop refine, edit, input, and attachment state."""
        self.state.mode = Mode(mode)
        self.state.close_refine()
        self.state.editing_id = None
        self.state.input_text = ""
        self.state.attached_image = None
        await self._session_changed()

    async def attach_image(self, image: str) -> None:
        self.state.attached_image = image
        await self._session_changed()
        await self.notify(NOTICE_IMAGE_ATTACHED)

    async def clear_attached_image(self) -> None:
        self.state.attached_image = None
        await self._session_changed()

    async def start_new_chat(self) -> None:
        """Reset the log and every session field to initial values."""
        self.log.clear()
        self.state = SessionState.initial()
        LOGGER.info("controller.new_chat", extra={"event": "controller.new_chat"})
        await self._conversation_changed()
        await self._session_changed()
        await self.notify(NOTICE_NEW_CHAT)

    async def edit_message(self, message_id: int) -> Message | None:
        """Load a message into the input and mark it as the edit target."""
        message = self.log.get(message_id)
        if message is None:
            LOGGER.warning(
                "controller.edit.missing",
                extra={"event": "controller.edit.missing", "message_id": message_id},
            )
            return None
        if message.sender is not Sender.USER:
            LOGGER.warning(
                "controller.edit.not_user_message",
                extra={
                    "event": "controller.edit.not_user_message",
                    "message_id": message_id,
                },
            )
            return None
        self.state.editing_id = message.id
        self.state.input_text = message.text
        await self._session_changed()
        await self.notify(NOTICE_EDITING)
        return message

    async def reply_to(self, text: str) -> None:
        excerpt = text[: self.reply_excerpt_chars]
        self.state.input_text = f'{REPLY_LABEL}"{excerpt}..."\n'
        await self._session_changed()
        await self.notify(NOTICE_REPLY)

    async def copy_text(self, text: str) -> bool:
        """Hand ``text`` to the clipboard collaborator."""
        if self.clipboard is None:
            await self.notify(NOTICE_CLIPBOARD_UNAVAILABLE)
            return False
        self.clipboard(text)
        await self.notify(NOTICE_COPIED)
        return True

    # Sending

    async def submit(self) -> Message | None:
        """Submit whatever the session currently holds."""
        return await self.submit_input(
            self.state.input_text,
            self.state.attached_image,
            self.state.mode,
            self.state.editing_id,
        )

    async def submit_input(
        self,
        text: str | None = None,
        attached_image: str | None = _UNSET,
        mode: Mode | str = _UNSET,
        editing_id: int | None = _UNSET,
    ) -> Message | None:
        """Record a user message and dispatch exactly one request for it.

        Omitted arguments are taken from the session state; an explicit
        ``None`` means no image or no edit. Returns the stored user message,
        or ``None`` when there was nothing to send.
        """
        if text is None:
            text = self.state.input_text
        if attached_image is _UNSET:
            attached_image = self.state.attached_image
        if mode is _UNSET:
            mode = self.state.mode
        if editing_id is _UNSET:
            editing_id = self.state.editing_id
        if not text.strip() and not attached_image:
            return None
        active_mode = Mode(mode)

        user_message = Message(
            id=0,
            sender=Sender.USER,
            text=text,
            timestamp=self._timestamp(),
            image=attached_image,
        )
        edit_target = self.log.get(editing_id)
        if edit_target is not None and edit_target.sender is Sender.USER:
            self.log.replace(editing_id, user_message)
            linked_id = edit_target.id
        else:
            if editing_id is not None:
                LOGGER.warning(
                    "controller.edit.target_unusable",
                    extra={
                        "event": "controller.edit.target_unusable",
                        "message_id": editing_id,
                        "found": edit_target is not None,
                    },
                )
            editing_id = None
            linked_id = self._ids.next()
            self.log.append(dataclasses.replace(user_message, id=linked_id))

        self.state.input_text = ""
        self.state.attached_image = None
        self.state.editing_id = None
        LOGGER.info(
            "controller.submit",
            extra={
                "event": "controller.submit",
                "mode": active_mode.value,
                "edited": editing_id is not None,
                "has_image": bool(attached_image),
                "message_id": linked_id,
            },
        )
        await self._conversation_changed()
        await self._session_changed()

        if active_mode is Mode.IMAGE:
            await self._request_image(text)
        elif attached_image:
            await self._request_analysis(text, attached_image)
        else:
            turns = self.log.to_turns(self.log.before(linked_id))
            turns.append(Turn(role="user", text=text))
            await self._request_chat(turns, linked_id)
        return self.log.get(linked_id)

    async def _request_chat(self, turns: list[Turn], linked_id: int) -> None:
        self.state.loading.chat = True
        await self._session_changed()
        try:
            result: RequestResult = await self.client.generate_text(turns)
        except asyncio.CancelledError:
            self.state.loading.chat = False
            raise
        except Exception as exc:  # noqa: BLE001 - every failure degrades to the fallback.
            result = exc
        await self.complete_chat_turn(result, linked_id)

    async def _request_analysis(self, prompt: str, image: str) -> None:
        self.state.loading.analysis = True
        await self._session_changed()
        try:
            result: RequestResult = await self.client.analyze_image(prompt, image)
        except asyncio.CancelledError:
            self.state.loading.analysis = False
            raise
        except Exception as exc:  # noqa: BLE001 - every failure degrades to the fallback.
            result = exc
        await self.complete_image_analysis(result)

    async def _request_image(
        self,
        prompt: str,
        *,
        request_prompt: str | None = None,
        target_id: int | None = None,
        selection: RefineSelection | None = None,
    ) -> None:
        self.state.loading.image_generation = True
        await self._session_changed()
        try:
            result: RequestResult = await self.client.generate_image(
                request_prompt or prompt
            )
        except asyncio.CancelledError:
            self.state.loading.image_generation = False
            raise
        except Exception as exc:  # noqa: BLE001 - every failure degrades to the placeholder.
            result = exc
        await self.complete_image_generation(
            result,
            prompt,
            is_refinement=target_id is not None,
            target_id=target_id,
            selection=selection,
        )

    # Completions

    async def complete_chat_turn(
        self, result: RequestResult, linked_user_id: int | None
    ) -> Message:
        """Append the AI reply linked to ``linked_user_id``, or the fallback."""
        try:
            text = _usable_text(result)
            if text is None:
                LOGGER.warning(
                    "controller.chat.failed",
                    extra={
                        "event": "controller.chat.failed",
                        "reason": _failure_reason(result),
                    },
                )
                message = Message(
                    id=self._ids.next(),
                    sender=Sender.AI,
                    text=FALLBACK_CHAT_TEXT,
                    timestamp=self._timestamp(),
                )
            else:
                message = Message(
                    id=self._ids.next(),
                    sender=Sender.AI,
                    text=text,
                    timestamp=self._timestamp(),
                    original_prompt_id=linked_user_id,
                )
            self.log.append(message)
        finally:
            self.state.loading.chat = False
        await self._conversation_changed()
        await self._session_changed()
        return message

    async def complete_image_analysis(self, result: RequestResult) -> Message:
        """Append the analysis text, or the analysis fallback."""
        try:
            text = _usable_text(result)
            if text is None:
                LOGGER.warning(
                    "controller.analysis.failed",
                    extra={
                        "event": "controller.analysis.failed",
                        "reason": _failure_reason(result),
                    },
                )
                text = FALLBACK_ANALYSIS_TEXT
            message = Message(
                id=self._ids.next(),
                sender=Sender.AI,
                text=text,
                timestamp=self._timestamp(),
            )
            self.log.append(message)
        finally:
            self.state.loading.analysis = False
        await self._conversation_changed()
        await self._session_changed()
        return message

    async def complete_image_generation(
        self,
        result: RequestResult,
        prompt: str,
        is_refinement: bool = False,
        target_id: int | None = None,
        selection: RefineSelection | None = None,
    ) -> Message | None:
        """Store a generated image, in place for refinements.

        ``prompt`` is the user's original image prompt; it is what gets kept
        on the message so the image can be refined again later.
        """
        message: Message | None = None
        try:
            image = _usable_text(result)
            if image is None:
                LOGGER.warning(
                    "controller.image.failed",
                    extra={
                        "event": "controller.image.failed",
                        "reason": _failure_reason(result),
                        "refinement": is_refinement,
                    },
                )
                image = PLACEHOLDER_IMAGE_URL
            if is_refinement and target_id is not None:
                message = self.log.update(
                    target_id,
                    image=image,
                    text=image_caption(prompt, selection),
                    timestamp=self._timestamp(),
                    refined=True,
                )
                if message is None:
                    LOGGER.warning(
                        "controller.refine.target_missing",
                        extra={
                            "event": "controller.refine.target_missing",
                            "message_id": target_id,
                        },
                    )
            else:
                message = self.log.append(
                    Message(
                        id=self._ids.next(),
                        sender=Sender.AI,
                        text=image_caption(prompt),
                        timestamp=self._timestamp(),
                        image=image,
                        original_image_prompt=prompt,
                    )
                )
        finally:
            self.state.loading.image_generation = False
            self.state.close_refine()
        await self._conversation_changed()
        await self._session_changed()
        return message

    async def complete_text_refinement(
        self, result: RequestResult, target_id: int
    ) -> Message | None:
        """Rewrite the target message in place, or append the chat fallback."""
        text = _usable_text(result)
        if text is None:
            return await self.complete_chat_turn(result, None)
        try:
            message = self.log.update(
                target_id, text=text, timestamp=self._timestamp(), refined=True
            )
            if message is None:
                LOGGER.warning(
                    "controller.refine.target_missing",
                    extra={
                        "event": "controller.refine.target_missing",
                        "message_id": target_id,
                    },
                )
        finally:
            self.state.loading.chat = False
        await self._conversation_changed()
        await self._session_changed()
        return message

    # Refinement

    async def open_refine(self, message: Message | int) -> Message | None:
        """Make ``message`` the single refine target and reset its selections."""
        target = self.log.get(message if isinstance(message, int) else message.id)
        if target is None:
            return None
        self.state.refine_target_id = target.id
        if target.has_image:
            self.state.refine.reset_image()
        else:
            self.state.refine.reset_text()
        self.state.show_refine_menu = True
        await self._session_changed()
        return target

    async def select_refine_option(self, option: str, value: str | None) -> None:
        self.state.refine.select(option, value)
        await self._session_changed()

    async def cancel_refine(self) -> None:
        self.state.close_refine()
        await self._session_changed()

    async def confirm_refine(self) -> None:
        """Run the refinement for the current target.

        The menu closes and every selection resets whatever happens next; the
        chosen options are captured before that.
        """
        target = self.refine_target
        selection = dataclasses.replace(self.state.refine)
        self.state.close_refine()
        await self._session_changed()
        if target is None:
            return

        if target.has_image:
            if not selection.has_image_option():
                await self.notify(NOTICE_SELECT_IMAGE_OPTION)
                return
            base_prompt = target.original_image_prompt
            if not base_prompt:
                await self.notify(NOTICE_IMAGE_NOT_REFINABLE)
                return
            LOGGER.info(
                "controller.refine.image",
                extra={
                    "event": "controller.refine.image",
                    "message_id": target.id,
                    "style": selection.style,
                    "blur": selection.blur,
                },
            )
            await self._request_image(
                base_prompt,
                request_prompt=build_image_refinement_prompt(base_prompt, selection),
                target_id=target.id,
                selection=selection,
            )
            return

        instruction = build_text_refinement_instruction(selection)
        if not instruction:
            await self.notify(NOTICE_NO_TEXT_OPTION)
            return
        LOGGER.info(
            "controller.refine.text",
            extra={
                "event": "controller.refine.text",
                "message_id": target.id,
                "instruction": instruction,
            },
        )
        turns = self.log.to_turns()
        turns.append(
            Turn(role="user", text=build_text_refinement_prompt(instruction, target.text))
        )
        self.state.loading.chat = True
        await self._session_changed()
        try:
            result: RequestResult = await self.client.generate_text(turns)
        except asyncio.CancelledError:
            self.state.loading.chat = False
            raise
        except Exception as exc:  # noqa: BLE001 - every failure degrades to the fallback.
            result = exc
        await self.complete_text_refinement(result, target.id)
