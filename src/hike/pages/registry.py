"""
=============================================================================
DYNAMIC PAGE REGISTRY
=============================================================================

Maps request URLs to the anchors that render them.

=============================================================================
LIFECYCLE
=============================================================================

    startup (main thread)              serving (worker threads)
    ─────────────────────              ────────────────────────
    registry.register(page)            registry.lookup("/")   ─┐
    registry.register(page)            registry.lookup("/a")   ├─ concurrent
    registry.freeze()  ◄── Server.run  registry.lookup("/")   ─┘  reads only
                        │
                        └── register() now raises RegistryFrozenError

Because nothing writes after freeze(), every worker can read the registry
without a lock.

=============================================================================
MATCHING
=============================================================================

Lookup is an exact string match on the decoded request path:

    registered "/"             matches  GET /            (served from index.html)
                               misses   GET /index.html
    registered "/assets/"      matches  GET /assets/
                               misses   GET /assets

The registry knows URLs, the resolver knows files. They meet only in the
request handler.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, Sequence

from .anchors import Anchor


class DuplicatePageError(ValueError):
    """A dynamic page was registered twice for the same URL."""


class RegistryFrozenError(RuntimeError):
    """A dynamic page was registered after the server started serving."""


@dataclass
class DynamicPage:
    """
    One URL whose content passes through anchors before being served.

    Attributes:
        url: Exact request path ("/", "/status.html"), no patterns.
        anchors: Applied in this order. Markers must be unique.
    """

    url: str
    anchors: Sequence[Anchor] = field(default_factory=list)

    def __post_init__(self):
        if not self.url.startswith("/"):
            raise ValueError(f"Dynamic page URL must start with '/': {self.url!r}")

        self.anchors = tuple(self.anchors)

        seen = set()
        for anchor in self.anchors:
            if anchor.marker_bytes in seen:
                raise ValueError(f"Duplicate marker {anchor.marker!r} on page {self.url}")
            seen.add(anchor.marker_bytes)


class PageRegistry:
    """
    URL → DynamicPage mapping, writable until frozen.

    Usage:
        registry = PageRegistry()
        registry.register(DynamicPage("/", [Anchor("<!-- [x] -->", f)]))
        registry.freeze()
        registry.lookup("/")      # (Anchor(...),)
        registry.lookup("/nope")  # ()
    """

    def __init__(self):
        self._pages: Dict[str, DynamicPage] = {}
        self._frozen = False

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def register(self, page: DynamicPage) -> None:
        """
        Add a dynamic page.

        Raises:
            RegistryFrozenError: Serving has already started.
            DuplicatePageError: The URL is already registered.
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register {page.url}: server is already serving"
            )
        if page.url in self._pages:
            raise DuplicatePageError(f"Dynamic page already registered for {page.url}")

        self._pages[page.url] = page

    def lookup(self, url: str) -> tuple[Anchor, ...]:
        """Anchors for `url`, or an empty tuple if it is not dynamic."""
        page = self._pages.get(url)
        return page.anchors if page is not None else ()

    def freeze(self) -> None:
        """Stop accepting registrations. Idempotent."""
        self._frozen = True

    def __contains__(self, url: str) -> bool:
        return url in self._pages

    def __len__(self) -> int:
        return len(self._pages)

    def __iter__(self) -> Iterator[DynamicPage]:
        return iter(self._pages.values())
