"""Display surface: the narrow DOM-like interface the engine draws on.

The engine never builds a page itself. It assigns text and markup to
elements by id, toggles classes, and reads/writes scroll offsets on the
scrollable panels. Anything that can do that (a browser bridge, a
framebuffer UI, the in-memory surface below) can host the display.

MemorySurface keeps the whole element tree in memory. The CLI uses it for
headless runs and the tests use it to observe exactly what was drawn.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import NamedTuple, Protocol, runtime_checkable

from src.signage.logging import get_logger

log = get_logger(__name__)

# User-originated events that pause auto-scroll
INTERACTION_EVENTS: frozenset[str] = frozenset({"pointerdown", "touchstart", "wheel"})

Unsubscribe = Callable[[], None]
InteractionCallback = Callable[[str], None]
# (scroll_height, client_height) for a panel given its markup
Measure = Callable[[str, str], tuple[int, int]]


class Child(NamedTuple):
    element_id: str
    html: str
    classes: tuple[str, ...] = ()


class DisplaySurface(Protocol):
    def exists(self, element_id: str) -> bool: ...

    def set_text(self, element_id: str, text: str) -> None: ...

    def set_html(self, element_id: str, html: str) -> None: ...

    def replace_children(self, container_id: str, children: Sequence[Child]) -> None:
        """Drop every child of container_id and create the given ones in order."""
        ...

    def set_attribute(self, element_id: str, name: str, value: str) -> None: ...

    def toggle_class(self, element_id: str, name: str, on: bool) -> None: ...

    def set_hidden(self, element_id: str, hidden: bool) -> None: ...

    def scroll_metrics(self, element_id: str) -> tuple[int, int]:
        """(scroll_height, client_height) of a panel."""
        ...

    def get_scroll_top(self, element_id: str) -> float: ...

    def set_scroll_top(self, element_id: str, value: float) -> None: ...


@runtime_checkable
class InteractionSource(Protocol):
    def subscribe(self, element_id: str, callback: InteractionCallback) -> Unsubscribe:
        """Call back with the event name on each user interaction with the element."""
        ...


@dataclass(eq=False)
class Element:
    id: str
    text: str = ""
    html: str = ""
    classes: set[str] = field(default_factory=set)
    attributes: dict[str, str] = field(default_factory=dict)
    hidden: bool = False
    scroll_top: float = 0.0
    scroll_height: int = 0
    client_height: int = 0
    scroll_writes: int = 0
    children: list[str] = field(default_factory=list)
    listeners: list[InteractionCallback] = field(default_factory=list)


class MemorySurface:
    """In-memory DisplaySurface and InteractionSource.

    Elements are created on first write. Replacing a container's children
    creates fresh Element objects, so listeners attached to the old nodes
    are gone with them, as in a browser.

    Panel heights come from ``measure`` when given (markup in, metrics out),
    otherwise they stay at zero until ``set_metrics`` is called.
    """

    def __init__(self, measure: Measure | None = None) -> None:
        self._elements: dict[str, Element] = {}
        self._measure = measure

    def element(self, element_id: str) -> Element:
        node = self._elements.get(element_id)
        if node is None:
            node = Element(id=element_id)
            self._elements[element_id] = node
        return node

    def exists(self, element_id: str) -> bool:
        return element_id in self._elements

    def set_text(self, element_id: str, text: str) -> None:
        self.element(element_id).text = text

    def set_html(self, element_id: str, html: str) -> None:
        node = self.element(element_id)
        node.html = html
        self._remeasure(node)

    def replace_children(self, container_id: str, children: Sequence[Child]) -> None:
        container = self.element(container_id)
        for child_id in container.children:
            self._elements.pop(child_id, None)
        container.children = []
        for child in children:
            node = Element(id=child.element_id, html=child.html, classes=set(child.classes))
            self._elements[child.element_id] = node
            container.children.append(child.element_id)
            self._remeasure(node)

    def set_attribute(self, element_id: str, name: str, value: str) -> None:
        self.element(element_id).attributes[name] = value

    def toggle_class(self, element_id: str, name: str, on: bool) -> None:
        classes = self.element(element_id).classes
        if on:
            classes.add(name)
        else:
            classes.discard(name)

    def set_hidden(self, element_id: str, hidden: bool) -> None:
        self.element(element_id).hidden = hidden

    def set_metrics(self, element_id: str, scroll_height: int, client_height: int) -> None:
        node = self.element(element_id)
        node.scroll_height = scroll_height
        node.client_height = client_height

    def scroll_metrics(self, element_id: str) -> tuple[int, int]:
        node = self.element(element_id)
        return node.scroll_height, node.client_height

    def get_scroll_top(self, element_id: str) -> float:
        return self.element(element_id).scroll_top

    def set_scroll_top(self, element_id: str, value: float) -> None:
        node = self.element(element_id)
        limit = max(0, node.scroll_height - node.client_height)
        node.scroll_top = min(max(0.0, value), float(limit))
        node.scroll_writes += 1

    def subscribe(self, element_id: str, callback: InteractionCallback) -> Unsubscribe:
        node = self.element(element_id)
        node.listeners.append(callback)

        def unsubscribe() -> None:
            if callback in node.listeners:
                node.listeners.remove(callback)

        return unsubscribe

    def dispatch(self, element_id: str, event: str) -> None:
        """Deliver a user interaction to whatever listens on the element now."""
        node = self._elements.get(element_id)
        if node is None:
            log.debug("interaction_dropped", element_id=element_id, event=event)
            return
        for callback in list(node.listeners):
            callback(event)

    def _remeasure(self, node: Element) -> None:
        if self._measure is not None:
            node.scroll_height, node.client_height = self._measure(node.id, node.html)
