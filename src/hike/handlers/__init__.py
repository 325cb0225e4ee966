"""
Request handling: path resolution and the per-request pipeline.
"""

from .resolver import PathResolver, resolve
from .request_handler import RequestHandler

__all__ = [
    "PathResolver",
    "resolve",
    "RequestHandler",
]
