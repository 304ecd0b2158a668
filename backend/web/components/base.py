"""
Base component for the portal's server-rendered HTML.

Components are plain Python classes with a `render()` method; there is no
template engine. Every interpolated value goes through `escape`.
"""

from typing import Any, Iterable, Optional
import html


class Component:
    """Base class for all UI components."""

    def render(self) -> str:
        raise NotImplementedError("Subclasses must implement render()")

    @staticmethod
    def escape(text: Optional[Any]) -> str:
        """Escape HTML entities; None renders as an empty string."""
        return html.escape(str(text)) if text is not None else ""

    @staticmethod
    def classes(*args: str, **conditionals: bool) -> str:
        """Build a CSS class string.

        Example:
            >>> Component.classes("badge", high=True, low=False)
            "badge high"
        """
        classes = list(args)
        classes.extend(key for key, value in conditionals.items() if value)
        return " ".join(classes)


class Table(Component):
    """Simple data table: column headers plus rows of already-plain values."""

    def __init__(self, headers: Iterable[str], rows: Iterable[Iterable[Any]], empty_text: str = "No data available."):
        self.headers = list(headers)
        self.rows = [list(r) for r in rows]
        self.empty_text = empty_text

    def render(self) -> str:
        if not self.rows:
            return f'<p class="text-muted empty-state">{self.escape(self.empty_text)}</p>'
        head = "".join(f"<th>{self.escape(h)}</th>" for h in self.headers)
        body = "".join(
            "<tr>" + "".join(f"<td>{self.escape(cell)}</td>" for cell in row) + "</tr>" for row in self.rows
        )
        return f'<table class="table"><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>'
