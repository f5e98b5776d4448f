"""Typed property records for the known A2UI component vocabulary.

Descriptors carry ``properties``/``data`` as open JSON mappings. ``to_props``
turns a descriptor into one of the records below, coercing leniently since
the payload comes from a language model. Unknown types map to ``None``.
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from ..core import UIComponentDescriptor


@dataclass(frozen=True)
class CardAction:
    label: str
    variant: str = "default"
    action: str = ""


@dataclass(frozen=True)
class CardProps:
    title: str = ""
    description: str = ""
    content: str = ""
    actions: tuple[CardAction, ...] = ()


@dataclass(frozen=True)
class ProgressProps:
    value: float = 0.0  # clamped to 0-100
    label: str = ""


@dataclass(frozen=True)
class ListProps:
    title: str = ""
    items: tuple[str, ...] = ()
    ordered: bool = False


@dataclass(frozen=True)
class AccordionItem:
    title: str
    content: str = ""


@dataclass(frozen=True)
class AccordionProps:
    items: tuple[AccordionItem, ...] = ()


@dataclass(frozen=True)
class TimelineEvent:
    title: str
    date: str = ""
    description: str = ""


@dataclass(frozen=True)
class TimelineProps:
    title: str = ""
    events: tuple[TimelineEvent, ...] = ()


@dataclass(frozen=True)
class BadgeProps:
    label: str = ""
    variant: str = "default"


@dataclass(frozen=True)
class TableProps:
    title: str = ""
    headers: tuple[str, ...] = ()
    rows: tuple[tuple[str, ...], ...] = ()


@dataclass(frozen=True)
class Tab:
    label: str
    content: str = ""


@dataclass(frozen=True)
class TabsProps:
    tabs: tuple[Tab, ...] = ()
    default_index: int = 0


ComponentProps = Union[
    CardProps,
    ProgressProps,
    ListProps,
    AccordionProps,
    TimelineProps,
    BadgeProps,
    TableProps,
    TabsProps,
]


def to_props(descriptor: UIComponentDescriptor) -> Optional[ComponentProps]:
    """Build the typed record for ``descriptor``, or None if its type is unknown."""
    parser = _PARSERS.get(descriptor.type)
    if parser is None:
        return None
    return parser(descriptor.properties or {}, descriptor.data)


def known_types() -> frozenset[str]:
    return frozenset(_PARSERS)


# ── Coercion helpers ─────────────────────────────────────────────


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _seq(value: Any) -> list:
    return value if isinstance(value, list) else []


def _first(props: dict, *keys: str) -> Any:
    for key in keys:
        if props.get(key) is not None:
            return props[key]
    return None


def _items(props: dict, data: Any, *keys: str) -> list:
    value = _first(props, *keys)
    if value is None and isinstance(data, list):
        value = data
    return _seq(value)


# ── Per-type parsers ─────────────────────────────────────────────


def _card(props: dict, data: Any) -> CardProps:
    actions = []
    for raw in _seq(props.get("actions")):
        if isinstance(raw, dict):
            actions.append(CardAction(
                label=_text(raw.get("label")),
                variant=_text(raw.get("variant")) or "default",
                action=_text(raw.get("action")),
            ))
        elif isinstance(raw, str):
            actions.append(CardAction(label=raw, action=raw))
    return CardProps(
        title=_text(props.get("title")),
        description=_text(props.get("description")),
        content=_text(_first(props, "content", "text", "body")),
        actions=tuple(actions),
    )


def _progress(props: dict, data: Any) -> ProgressProps:
    try:
        value = float(props.get("value", 0))
    except (TypeError, ValueError):
        value = 0.0
    if math.isnan(value):
        value = 0.0
    return ProgressProps(value=min(max(value, 0.0), 100.0), label=_text(props.get("label")))


def _list(props: dict, data: Any) -> ListProps:
    items = []
    for raw in _items(props, data, "items"):
        if isinstance(raw, dict):
            items.append(_text(_first(raw, "text", "label", "title")))
        else:
            items.append(_text(raw))
    return ListProps(
        title=_text(props.get("title")),
        items=tuple(items),
        ordered=bool(props.get("ordered", False)),
    )


def _accordion(props: dict, data: Any) -> AccordionProps:
    items = []
    for raw in _items(props, data, "items", "sections"):
        if isinstance(raw, dict):
            items.append(AccordionItem(
                title=_text(_first(raw, "title", "label", "question")),
                content=_text(_first(raw, "content", "text", "answer")),
            ))
    return AccordionProps(items=tuple(items))


def _timeline(props: dict, data: Any) -> TimelineProps:
    events = []
    for raw in _items(props, data, "events", "items"):
        if isinstance(raw, dict):
            events.append(TimelineEvent(
                title=_text(_first(raw, "title", "label")),
                date=_text(raw.get("date")),
                description=_text(raw.get("description")),
            ))
    return TimelineProps(title=_text(props.get("title")), events=tuple(events))


def _badge(props: dict, data: Any) -> BadgeProps:
    return BadgeProps(
        label=_text(_first(props, "label", "text")),
        variant=_text(props.get("variant")) or "default",
    )


def _table(props: dict, data: Any) -> TableProps:
    headers = []
    keys = []
    # columns may be [{"key": ..., "label": ...}]
    for raw in _seq(_first(props, "headers", "columns")):
        if isinstance(raw, dict):
            keys.append(_text(raw.get("key")))
            headers.append(_text(_first(raw, "label", "key")))
        else:
            keys.append(_text(raw))
            headers.append(_text(raw))

    rows = []
    for raw in _items(props, data, "rows"):
        if isinstance(raw, dict):
            if not keys:
                keys = list(raw)
                headers = [_text(k) for k in keys]
            rows.append(tuple(_text(raw.get(k)) for k in keys))
        elif isinstance(raw, list):
            rows.append(tuple(_text(cell) for cell in raw))
    return TableProps(title=_text(props.get("title")), headers=tuple(headers), rows=tuple(rows))


def _tabs(props: dict, data: Any) -> TabsProps:
    tabs = []
    for raw in _items(props, data, "tabs", "items"):
        if isinstance(raw, dict):
            tabs.append(Tab(
                label=_text(_first(raw, "label", "title")),
                content=_text(_first(raw, "content", "text")),
            ))
    try:
        default_index = int(props.get("defaultIndex", 0))
    except (TypeError, ValueError, OverflowError):
        default_index = 0
    if not 0 <= default_index < max(len(tabs), 1):
        default_index = 0
    return TabsProps(tabs=tuple(tabs), default_index=default_index)


_PARSERS: dict[str, Callable[[dict, Any], ComponentProps]] = {
    "card": _card,
    "progress": _progress,
    "list": _list,
    "accordion": _accordion,
    "timeline": _timeline,
    "badge": _badge,
    "table": _table,
    "datatable": _table,
    "tabs": _tabs,
}
