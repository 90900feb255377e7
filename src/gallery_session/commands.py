"""
Keyboard command routing.

Maps key names to named gallery commands and runs the handler bound to
each command. The router attaches to a host key source only while the
gallery view is active, see :meth:`CommandRouter.installed`.
"""

import inspect
from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import contextmanager
from enum import Enum
from typing import Any, Protocol

from loguru import logger


class Command(str, Enum):
    """Commands the gallery exposes to keyboards and test harnesses."""

    NEXT_IMAGE = "next-image"
    PREVIOUS_IMAGE = "previous-image"
    CLOSE = "close"
    TOGGLE_TAG_MODE = "toggle-tag-mode"
    CLEAR_SELECTION = "clear-selection"
    TOGGLE_SEARCH = "toggle-search"
    TOGGLE_QUALITY = "toggle-quality"
    OPEN_UPLOADER = "open-uploader"


DEFAULT_KEYMAP: dict[str, Command] = {
    "ArrowRight": Command.NEXT_IMAGE,
    "ArrowLeft": Command.PREVIOUS_IMAGE,
    "Escape": Command.CLOSE,
    "t": Command.TOGGLE_TAG_MODE,
    "c": Command.CLEAR_SELECTION,
    "/": Command.TOGGLE_SEARCH,
    "q": Command.TOGGLE_QUALITY,
    "u": Command.OPEN_UPLOADER,
}

Handler = Callable[[], Any]
KeyListener = Callable[[str, bool], Awaitable[bool]]


class KeySource(Protocol):
    """Host-side producer of key presses."""

    def add_listener(self, listener: KeyListener) -> None: ...

    def remove_listener(self, listener: KeyListener) -> None: ...


class KeyBus:
    """Minimal :class:`KeySource` for terminals and tests."""

    def __init__(self) -> None:
        self.listeners: list[KeyListener] = []

    def add_listener(self, listener: KeyListener) -> None:
        self.listeners.append(listener)

    def remove_listener(self, listener: KeyListener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    async def press(self, key: str, in_text_input: bool = False) -> bool:
        """Deliver a key press; returns whether any listener handled it."""
        handled = False
        for listener in list(self.listeners):
            handled = await listener(key, in_text_input) or handled
        return handled


class CommandRouter:
    """Dispatches key presses to command handlers."""

    def __init__(self, keymap: Mapping[str, Command] | None = None):
        self.keymap = dict(DEFAULT_KEYMAP if keymap is None else keymap)
        self._handlers: dict[Command, Handler] = {}

    def bind(self, command: Command | str, handler: Handler) -> None:
        """Bind ``handler`` (sync or async, no arguments) to ``command``."""
        self._handlers[Command(command)] = handler

    async def execute(self, command: Command | str) -> bool:
        """Run the handler for ``command``. Returns False when unbound."""
        command = Command(command)
        handler = self._handlers.get(command)
        if handler is None:
            logger.debug("No handler bound for {}", command.value)
            return False
        logger.debug("Executing {}", command.value)
        result = handler()
        if inspect.isawaitable(result):
            await result
        return True

    async def dispatch(self, key: str, in_text_input: bool = False) -> bool:
        """
        Handle a key press.

        Keys typed into a text input are left alone, except Escape.

        Returns:
            True if the key mapped to a bound command that ran
        """
        command = self.keymap.get(key)
        if command is None:
            return False
        if in_text_input and key != "Escape":
            return False
        return await self.execute(command)

    @contextmanager
    def installed(self, source: KeySource) -> Iterator["CommandRouter"]:
        """Listen to ``source`` for the duration of the block.

        The listener is removed on exit, including when the block raises.
        """
        source.add_listener(self.dispatch)
        logger.debug("Command router installed")
        try:
            yield self
        finally:
            source.remove_listener(self.dispatch)
            logger.debug("Command router removed")
