"""
Tests for the Events module.
"""

from typing import Any, Callable

import pytest

from runtime_stuff.core.members import Event, EventHandlers

from sample_types import Button


class TestEventHandlers:
    """Tests for EventHandlers."""

    def test_subscribe_and_raise(self):
        received = []
        handlers = EventHandlers()
        handlers += received.append
        assert handlers("ok") == [None]
        assert received == ["ok"]

    def test_unsubscribe(self):
        received = []
        handlers = EventHandlers()
        handlers += received.append
        handlers -= received.append
        handlers("ignored")
        assert received == []
        assert len(handlers) == 0

    def test_unsubscribe_unknown_handler_is_ignored(self):
        handlers = EventHandlers()
        handlers -= print
        assert len(handlers) == 0

    def test_non_callable_rejected(self):
        handlers = EventHandlers()
        with pytest.raises(TypeError):
            handlers.subscribe("not callable")


class TestEvent:
    """Tests for the Event descriptor."""

    def test_handlers_are_per_instance(self):
        first, second = Button("a"), Button("b")
        first.clicked += lambda caption: caption.upper()
        assert len(first.clicked) == 1
        assert len(second.clicked) == 0

    def test_raise_through_instance(self):
        button = Button("save")
        button.clicked += lambda caption: f"clicked {caption}"
        assert button.clicked(button.caption) == ["clicked save"]

    def test_reassignment_rejected(self):
        button = Button("save")
        with pytest.raises(AttributeError):
            button.clicked = EventHandlers()

    def test_class_access_returns_descriptor(self):
        assert isinstance(Button.clicked, Event)
        assert Button.clicked.name == "clicked"

    def test_handler_type_from_subscript(self):
        assert Button.clicked.resolve_handler_type() == Callable[[str], None]

    def test_handler_type_default(self):
        class Plain:
            changed = Event()

        assert Plain.changed.resolve_handler_type() == Callable[..., Any]
