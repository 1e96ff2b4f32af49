"""
Events

A minimal event member: a class attribute that hands every instance its own
list of handlers.

    class Button:
        clicked = Event[Callable[[str], None]]()

    button.clicked += on_click
    button.clicked("ok")
"""

from typing import Any, Callable, Generic, TypeVar

H = TypeVar("H", bound=Callable[..., Any])


class EventHandlers(Generic[H]):
    """Handlers subscribed to one event on one instance."""

    def __init__(self) -> None:
        self._handlers: list[H] = []

    def __iadd__(self, handler: H) -> "EventHandlers[H]":
        self.subscribe(handler)
        return self

    def __isub__(self, handler: H) -> "EventHandlers[H]":
        self.unsubscribe(handler)
        return self

    def subscribe(self, handler: H) -> None:
        if not callable(handler):
            raise TypeError(f"Event handler must be callable, got {type(handler).__name__}")
        self._handlers.append(handler)

    def unsubscribe(self, handler: H) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def __call__(self, *args: Any, **kwargs: Any) -> list[Any]:
        return [handler(*args, **kwargs) for handler in list(self._handlers)]

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self):
        return iter(list(self._handlers))


class Event(Generic[H]):
    """Descriptor declaring an event member on a class."""

    def __init__(self, handler_type: Any = None) -> None:
        self.handler_type = handler_type
        self.name = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type | None = None):
        if instance is None:
            return self
        handlers = instance.__dict__.get(self._storage_name)
        if handlers is None:
            handlers = instance.__dict__.setdefault(self._storage_name, EventHandlers())
        return handlers

    def __set__(self, instance: Any, value: Any) -> None:
        # ``+=`` on the instance attribute reassigns the same handler list
        if value is not instance.__dict__.get(self._storage_name):
            raise AttributeError(f"Event '{self.name}' cannot be reassigned")

    @property
    def _storage_name(self) -> str:
        return f"_event_{self.name}"

    def resolve_handler_type(self) -> Any:
        """Declared handler type, defaulting to ``Callable[..., Any]``."""
        if self.handler_type is not None:
            return self.handler_type
        args = getattr(getattr(self, "__orig_class__", None), "__args__", None)
        if args:
            return args[0]
        return Callable[..., Any]
