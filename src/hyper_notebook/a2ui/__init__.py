"""A2UI: components requested by the assistant as JSON, rendered from fixed templates."""

from .components import ComponentProps, known_types, to_props
from .extractor import extract_components, loads_strict, strip_component_blocks
from .renderer import render_component, render_components

__all__ = [
    "ComponentProps",
    "extract_components",
    "known_types",
    "loads_strict",
    "render_component",
    "render_components",
    "strip_component_blocks",
    "to_props",
]
