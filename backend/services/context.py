"""Context window built from the pages a reader has reached."""

from collections.abc import Sequence


def format_page(page_index: int, text: str) -> str:
    """Label a page block with its 1-based page number."""
    return f"[Page {page_index + 1}]: {text}"


def build_context(pages: Sequence[str], current_page_index: int) -> str:
    """Build the text the assistant is allowed to see.

    Only ``pages[0..current_page_index]`` (inclusive) are read; later pages
    are sliced off before any formatting happens, so they can never reach the
    generation request.

    Args:
        pages: Per-page plain text, in reading order.
        current_page_index: 0-based index of the page being viewed. Indices past
            the end include every page.

    Returns:
        Labelled page blocks joined with blank lines.

    Raises:
        ValueError: If current_page_index is negative.
    """
    if current_page_index < 0:
        raise ValueError(f"current_page_index must be >= 0, got {current_page_index}")

    visible = pages[: current_page_index + 1]
    return "\n\n".join(format_page(i, text) for i, text in enumerate(visible))
