"""
Dynamic pages: anchors (marker → function substitution) and the registry
that maps request URLs to them.
"""

from .anchors import Anchor, AnchorRenderError, command_anchor, render
from .registry import DynamicPage, PageRegistry, DuplicatePageError, RegistryFrozenError

__all__ = [
    "Anchor",
    "AnchorRenderError",
    "command_anchor",
    "render",
    "DynamicPage",
    "PageRegistry",
    "DuplicatePageError",
    "RegistryFrozenError",
]
