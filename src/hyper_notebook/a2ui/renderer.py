"""Render A2UI descriptors to HTML fragments.

Each known component type has one pre-built template. Rendering is a pure
function of the descriptor: unknown types produce an empty string so that a
newer model emitting a type this build does not know never breaks a message.
"""

import logging
from html import escape
from typing import Callable, Iterable

from ..core import UIComponentDescriptor
from .components import (
    AccordionProps,
    BadgeProps,
    CardProps,
    ListProps,
    ProgressProps,
    TableProps,
    TabsProps,
    TimelineProps,
    to_props,
)

logger = logging.getLogger(__name__)


def render_component(descriptor: UIComponentDescriptor) -> str:
    """Return the HTML for one descriptor, or "" if its type is unknown."""
    template = TEMPLATES.get(descriptor.type)
    props = to_props(descriptor)
    if template is None or props is None:
        logger.warning("Unknown A2UI component type: %s", descriptor.type)
        return ""

    body = template(props)
    return (
        f'<div class="a2ui-component a2ui-{escape(descriptor.type)}" '
        f'data-component-id="{escape(descriptor.id)}">{body}</div>'
    )


def render_components(descriptors: Iterable[UIComponentDescriptor]) -> str:
    """Render a flat list of descriptors in order.

    ``parent_id`` is not used to nest components.
    """
    parts = [render_component(d) for d in descriptors]
    return "\n".join(p for p in parts if p)


# ── Templates ────────────────────────────────────────────────────


def _card(props: CardProps) -> str:
    html = ['<div class="card">']
    if props.title:
        html.append(f'<h3 class="card-title">{escape(props.title)}</h3>')
    if props.description:
        html.append(f'<p class="card-description">{escape(props.description)}</p>')
    if props.content:
        html.append(f'<p class="card-content">{escape(props.content)}</p>')
    if props.actions:
        html.append('<div class="card-actions">')
        for action in props.actions:
            html.append(
                f'<button class="btn btn-{escape(action.variant)}" '
                f'data-action="{escape(action.action)}">{escape(action.label)}</button>'
            )
        html.append("</div>")
    html.append("</div>")
    return "".join(html)


def _progress(props: ProgressProps) -> str:
    value = f"{props.value:g}"
    label = f'<span class="progress-label">{escape(props.label)}</span>' if props.label else ""
    return (
        f'<div class="progress">{label}'
        f'<progress max="100" value="{value}">{value}%</progress></div>'
    )


def _list(props: ListProps) -> str:
    tag = "ol" if props.ordered else "ul"
    title = f"<h4>{escape(props.title)}</h4>" if props.title else ""
    items = "".join(f"<li>{escape(item)}</li>" for item in props.items)
    return f"{title}<{tag}>{items}</{tag}>"


def _accordion(props: AccordionProps) -> str:
    sections = "".join(
        f"<details><summary>{escape(item.title)}</summary><p>{escape(item.content)}</p></details>"
        for item in props.items
    )
    return f'<div class="accordion">{sections}</div>'


def _timeline(props: TimelineProps) -> str:
    title = f"<h4>{escape(props.title)}</h4>" if props.title else ""
    events = []
    for event in props.events:
        date = f'<time>{escape(event.date)}</time>' if event.date else ""
        desc = f"<p>{escape(event.description)}</p>" if event.description else ""
        events.append(f"<li>{date}<strong>{escape(event.title)}</strong>{desc}</li>")
    return f'{title}<ol class="timeline">{"".join(events)}</ol>'


def _badge(props: BadgeProps) -> str:
    return f'<span class="badge badge-{escape(props.variant)}">{escape(props.label)}</span>'


def _table(props: TableProps) -> str:
    caption = f"<caption>{escape(props.title)}</caption>" if props.title else ""
    head = ""
    if props.headers:
        head = "<thead><tr>" + "".join(f"<th>{escape(h)}</th>" for h in props.headers) + "</tr></thead>"
    rows = "".join(
        "<tr>" + "".join(f"<td>{escape(cell)}</td>" for cell in row) + "</tr>"
        for row in props.rows
    )
    return f"<table>{caption}{head}<tbody>{rows}</tbody></table>"


def _tabs(props: TabsProps) -> str:
    buttons = []
    panels = []
    for i, tab in enumerate(props.tabs):
        selected = "true" if i == props.default_index else "false"
        hidden = "" if i == props.default_index else " hidden"
        buttons.append(f'<button role="tab" aria-selected="{selected}">{escape(tab.label)}</button>')
        panels.append(f'<div role="tabpanel"{hidden}>{escape(tab.content)}</div>')
    return f'<div class="tabs"><div role="tablist">{"".join(buttons)}</div>{"".join(panels)}</div>'


TEMPLATES: dict[str, Callable] = {
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
