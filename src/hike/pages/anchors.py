"""
=============================================================================
ANCHORS: MARKER SUBSTITUTION FOR DYNAMIC PAGES
=============================================================================

An anchor pairs a literal marker that appears in a page's source with a
zero-argument function whose output replaces that marker when the page is
served.

    index.html on disk                       what the client receives
    ───────────────────                      ─────────────────────────
    <html>                                   <html>
      <pre><!-- [ls] --></pre>     ──────►     <pre>total 8
    </html>                                    -rw-r--r-- index.html</pre>
                                             </html>

          Anchor(marker="<!-- [ls] -->", function=list_directory)

=============================================================================
RENDERING RULES
=============================================================================

    1. Anchors are applied in list order, each on the output of the last.
    2. Matching is byte-exact. The page is never decoded, so a binary or
       Latin-1 page passes through untouched around the markers.
    3. The function is called ONLY if its marker is present, and at most
       once per render, however many occurrences it replaces.
    4. replace_all=True (default) replaces every occurrence;
       replace_all=False replaces only the first.
    5. Output is inserted verbatim: no HTML escaping, no rescanning.
       A function returning its own marker does not loop.
    6. A missing marker is a no-op, not an error.

=============================================================================
FAILURE
=============================================================================

If a function raises, or returns something other than str/bytes, render()
raises AnchorRenderError (chained to the original exception). The request
handler turns that into a 500 for that one request; the server keeps going.

=============================================================================
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import Callable, Iterable, Union


logger = logging.getLogger(__name__)


Content = Union[str, bytes]
AnchorFunction = Callable[[], Content]


class AnchorRenderError(Exception):
    """
    An anchor function failed while rendering a page.

    Attributes:
        marker: The marker whose function failed.
        cause: The exception the function raised, or the TypeError
               describing its bad return value.
    """

    def __init__(self, marker: Content, cause: Exception):
        super().__init__(f"Anchor {marker!r} failed: {type(cause).__name__}: {cause}")
        self.marker = marker
        self.cause = cause


@dataclass(frozen=True)
class Anchor:
    """
    One substitution rule: replace `marker` with `function()`.

    Attributes:
        marker: Literal text to find in the page (str is UTF-8 encoded).
        function: Zero-argument callable returning str or bytes. It is
                  referenced, not owned: close over whatever state it needs.
        replace_all: Replace every occurrence (default) or only the first.

    Example:
        Anchor("<!-- [uptime] -->", lambda: read_uptime())
    """

    marker: Content
    function: AnchorFunction
    replace_all: bool = True

    def __post_init__(self):
        if not isinstance(self.marker, (str, bytes)):
            raise TypeError(f"Anchor marker must be str or bytes, not {type(self.marker).__name__}")
        if not self.marker:
            raise ValueError("Anchor marker must not be empty")
        if not callable(self.function):
            raise TypeError(f"Anchor function for {self.marker!r} is not callable")

    @property
    def marker_bytes(self) -> bytes:
        return _to_bytes(self.marker)

    def produce(self) -> bytes:
        """
        Call the function and return its output as bytes.

        Raises:
            AnchorRenderError: The function raised or returned a bad type.
        """
        try:
            output = self.function()
        except Exception as e:
            raise AnchorRenderError(self.marker, e) from e

        if not isinstance(output, (str, bytes)):
            cause = TypeError(
                f"function returned {type(output).__name__}, expected str or bytes"
            )
            raise AnchorRenderError(self.marker, cause) from cause

        return _to_bytes(output)


def render(page: bytes, anchors: Iterable[Anchor]) -> bytes:
    """
    Apply anchors to page bytes, in order.

    Args:
        page: Raw page content as read from disk.
        anchors: Ordered anchors (usually from PageRegistry.lookup()).

    Returns:
        The transformed page. Identical to `page` when no marker occurs.

    Raises:
        AnchorRenderError: An anchor function failed.
    """
    for anchor in anchors:
        marker = anchor.marker_bytes

        if marker not in page:
            logger.debug(f"Anchor {anchor.marker!r} not present, skipped")
            continue

        replacement = anchor.produce()

        # bytes.replace never rescans inserted text
        if anchor.replace_all:
            count = page.count(marker)
            page = page.replace(marker, replacement)
        else:
            count = 1
            page = page.replace(marker, replacement, 1)

        logger.debug(
            f"Anchor {anchor.marker!r} replaced {count}x with {len(replacement)} bytes"
        )

    return page


def command_anchor(marker: Content, command: str, timeout: float = 10.0) -> Anchor:
    """
    Build an anchor whose output is a shell command's standard output.

    This is how the CLI wires `--dynamic / "<!-- [ls] -->" "ls -lh"`.
    A non-zero exit status is not an error (the output is still inserted,
    as a shell user would see it); failing to start or timing out is.

    Args:
        marker: Marker to replace.
        command: Command line run through the shell.
        timeout: Seconds before the command is killed.
    """
    def run_command() -> str:
        result = subprocess.run(
            command,
            shell=True,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        if result.returncode != 0:
            logger.warning(f"Command {command!r} exited with {result.returncode}")
        return result.stdout

    return Anchor(marker=marker, function=run_command)


def _to_bytes(value: Content) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")
