"""
Cursor pagination over an in-memory list (relay connection semantics).

The list is always fully materialised first; this module only decides which
window of it to return. Cursors are opaque base64 strings encoding the item's
offset in the list ("arrayconnection:<offset>"), so a cursor is only
meaningful against the same list it was issued for.

Window selection follows the relay connection algorithm:
  1. Start with the whole list
  2. "after"  drops everything up to and including the cursor
  3. "before" drops the cursor and everything after it
  4. "first"  keeps the first N of what remains
  5. "last"   keeps the last N of what remains
"""

import base64
from dataclasses import dataclass, field
from typing import Generic, Sequence, TypeVar

from ledger_api.exceptions import ValidationError


T = TypeVar("T")

CURSOR_PREFIX = "arrayconnection:"


@dataclass
class Edge(Generic[T]):
    node: T
    cursor: str


@dataclass
class PageInfo:
    start_cursor: str | None = None
    end_cursor: str | None = None
    has_previous_page: bool = False
    has_next_page: bool = False


@dataclass
class Connection(Generic[T]):
    edges: list[Edge[T]] = field(default_factory=list)
    page_info: PageInfo = field(default_factory=PageInfo)
    total_count: int = 0


def offset_to_cursor(offset: int) -> str:
    return base64.b64encode(f"{CURSOR_PREFIX}{offset}".encode()).decode()


def cursor_to_offset(cursor: str) -> int:
    """
    Decode a cursor back to its list offset.

    Raises:
        ValidationError: If the cursor wasn't produced by offset_to_cursor().
    """
    try:
        decoded = base64.b64decode(cursor.encode(), validate=True).decode()
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValidationError(f"Malformed cursor: {cursor!r}", field="cursor") from exc
    if not decoded.startswith(CURSOR_PREFIX):
        raise ValidationError(f"Malformed cursor: {cursor!r}", field="cursor")
    try:
        return int(decoded[len(CURSOR_PREFIX):])
    except ValueError as exc:
        raise ValidationError(f"Malformed cursor: {cursor!r}", field="cursor") from exc


def connection_from_list(
    items: Sequence[T],
    first: int | None = None,
    after: str | None = None,
    last: int | None = None,
    before: str | None = None,
) -> Connection[T]:
    """
    Slice items into a connection window.

    Raises:
        ValidationError: For a negative first/last or a malformed cursor.
    """
    if first is not None and first < 0:
        raise ValidationError("first must be non-negative", field="first")
    if last is not None and last < 0:
        raise ValidationError("last must be non-negative", field="last")

    length = len(items)
    start, end = 0, length

    if after is not None:
        start = max(start, cursor_to_offset(after) + 1)
    if before is not None:
        end = min(end, cursor_to_offset(before))
    if first is not None:
        end = min(end, start + first)
    if last is not None:
        start = max(start, end - last)

    edges = [
        Edge(node=items[offset], cursor=offset_to_cursor(offset))
        for offset in range(start, max(start, end))
    ]

    lower_bound = max(cursor_to_offset(after) + 1, 0) if after is not None else 0
    upper_bound = min(cursor_to_offset(before), length) if before is not None else length

    page_info = PageInfo(
        start_cursor=edges[0].cursor if edges else None,
        end_cursor=edges[-1].cursor if edges else None,
        has_previous_page=last is not None and start > lower_bound,
        has_next_page=first is not None and end < upper_bound,
    )
    return Connection(edges=edges, page_info=page_info, total_count=length)
