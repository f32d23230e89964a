"""
Hook dispatcher coordinating document lifecycle events.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional


HookHandler = Callable[..., None]

EVENTS = (
    "before_save",
    "after_save",
    "before_delete",
    "after_delete",
    "after_load",
    "after_flush",
)


class HookDispatcher:
    """
    Maintains global and per-class hook handlers.

    Per-class handlers also fire for instances of subclasses, so a handler
    registered on an inheritance root sees the whole hierarchy.
    """

    def __init__(self) -> None:
        self._global_handlers: Dict[str, List[HookHandler]] = defaultdict(list)
        self._type_handlers: Dict[type, Dict[str, List[HookHandler]]] = defaultdict(
            lambda: defaultdict(list)
        )

    def register(self, event: str, handler: HookHandler, *, target: Optional[type] = None) -> None:
        if event not in EVENTS:
            raise ValueError(f"Unknown hook event '{event}'. Expected one of {EVENTS}.")
        if target:
            self._type_handlers[target][event].append(handler)
        else:
            self._global_handlers[event].append(handler)

    def fire(self, event: str, instance: Optional[object], **context: Any) -> None:
        handlers = list(self._global_handlers.get(event, []))
        if instance is not None:
            for cls in type(instance).__mro__:
                handlers.extend(self._type_handlers.get(cls, {}).get(event, []))
        for handler in handlers:
            handler(instance, **context)

    def clear(self) -> None:
        self._global_handlers.clear()
        self._type_handlers.clear()


hooks = HookDispatcher()
