"""
List query parsing, filtering and pagination.

Supports offset pagination (``page``/``limit``) and keyset pagination driven
by an opaque cursor token. Cursor tokens are URL-safe base64 of a small typed
JSON payload, so callers never see the raw sort key representation and the
token survives transport as a single query-string value. A token also names
the sort field and order it was issued for and is refused under any other.

Every page is fetched with one lookahead row; ``has_next`` is derived from
that row rather than from the page being full.
"""
import base64
import enum
import json
import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Mapping, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from app.core.config import settings
from app.core.exceptions import InvalidCursor, ValidationError
from app.models.enums import BookingStatus
from app.utils.dates import as_utc

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CursorDirection(str, enum.Enum):
    NEXT = "next"
    PREV = "prev"


class ListQueryParams(BaseModel):
    page: int = 1
    limit: int = 50
    sort_by: str = "created_at"
    sort_order: str = "desc"
    search: Optional[str] = None
    status: Optional[List[BookingStatus]] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    room_ids: Optional[List[uuid.UUID]] = None
    is_tour: Optional[bool] = None
    cursor: Optional[str] = None
    cursor_direction: CursorDirection = CursorDirection.NEXT
    # Decoded form of ``cursor``: [sort value, row id]
    cursor_key: Optional[List[Any]] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def descending(self) -> bool:
        return self.sort_order == "desc"

    @property
    def reverse(self) -> bool:
        return self.cursor_key is not None and self.cursor_direction == CursorDirection.PREV


@dataclass
class PageResult(Generic[T]):
    items: List[T] = field(default_factory=list)
    total_count: int = 0
    current_page: int = 1
    total_pages: int = 0
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None
    has_next: bool = False
    has_prev: bool = False


# --- Cursor codec ---

def _to_payload(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"t": "datetime", "v": value.isoformat()}
    if isinstance(value, uuid.UUID):
        return {"t": "uuid", "v": str(value)}
    if isinstance(value, enum.Enum):
        return _to_payload(value.value)
    if isinstance(value, (list, tuple)):
        return {"t": "list", "v": [_to_payload(v) for v in value]}
    if isinstance(value, dict):
        return {"t": "dict", "v": {str(k): _to_payload(v) for k, v in value.items()}}
    if value is None or isinstance(value, (bool, int, float, str)):
        return {"t": "raw", "v": value}
    raise TypeError(f"Cannot encode cursor value of type {type(value).__name__}")


def _from_payload(payload: Any) -> Any:
    kind = payload["t"]
    raw = payload["v"]
    if kind == "datetime":
        return datetime.fromisoformat(raw)
    if kind == "uuid":
        return uuid.UUID(raw)
    if kind == "list":
        return [_from_payload(v) for v in raw]
    if kind == "dict":
        return {k: _from_payload(v) for k, v in raw.items()}
    if kind == "raw":
        return raw
    raise ValueError(f"Unknown cursor payload type: {kind}")


def encode_cursor(value: Any) -> str:
    """Encode a sort key into an opaque token."""
    data = json.dumps(_to_payload(value), separators=(",", ":"))
    return base64.urlsafe_b64encode(data.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(token: str) -> Any:
    """Decode a token produced by ``encode_cursor``; raises ``InvalidCursor``."""
    try:
        padded = token + "=" * (-len(token) % 4)
        data = base64.urlsafe_b64decode(padded.encode("ascii"))
        return _from_payload(json.loads(data.decode("utf-8")))
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning(f"Rejected malformed cursor token: {e}")
        raise InvalidCursor("Invalid cursor") from e


# --- Query parameter parsing ---

def _positive_int(raw: Mapping[str, str], *names: str, default: int) -> int:
    for name in names:
        value = raw.get(name)
        if value is None or value == "":
            continue
        try:
            parsed = int(value)
        except ValueError:
            raise ValidationError(f"'{name}' must be a positive integer")
        if parsed < 1:
            raise ValidationError(f"'{name}' must be a positive integer")
        return parsed
    return default


def _csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _timestamp(raw: Mapping[str, str], name: str) -> Optional[datetime]:
    value = raw.get(name)
    if not value:
        return None
    try:
        # Accept the trailing "Z" JavaScript clients send
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"'{name}' must be an ISO-8601 timestamp")


def _cursor_key(payload: Any, sort_by: str, sort_order: str) -> List[Any]:
    """Unpack a page cursor, checking it was issued for this ordering."""
    if not isinstance(payload, dict) or set(payload) != {"f", "o", "k"}:
        raise InvalidCursor("Invalid cursor")
    if payload["f"] != sort_by or payload["o"] != sort_order:
        raise InvalidCursor(
            "Cursor does not match the requested sort",
            details={"cursor_sort": [payload["f"], payload["o"]], "requested_sort": [sort_by, sort_order]},
        )
    key = payload["k"]
    if not isinstance(key, list) or len(key) != 2 or not isinstance(key[1], uuid.UUID):
        raise InvalidCursor("Invalid cursor")
    return key


def parse_query_params(
    raw: Mapping[str, str],
    *,
    sortable_fields: Type[enum.Enum],
    default_sort_by: str,
    default_sort_order: str = "desc",
) -> ListQueryParams:
    """Validate list-endpoint query parameters.

    ``sortable_fields`` is the closed set of columns the endpoint allows
    ordering by; anything else is rejected.
    """
    page = _positive_int(raw, "page", default=1)
    limit = min(
        _positive_int(raw, "limit", "pageSize", default=settings.DEFAULT_PAGE_SIZE),
        settings.MAX_PAGE_SIZE,
    )

    sort_by = raw.get("sortBy") or default_sort_by
    allowed = {f.value for f in sortable_fields}
    if sort_by not in allowed:
        raise ValidationError(
            f"Cannot sort by '{sort_by}'",
            details={"allowed": sorted(allowed)},
        )

    sort_order = (raw.get("sortOrder") or default_sort_order).lower()
    if sort_order not in ("asc", "desc"):
        raise ValidationError("'sortOrder' must be 'asc' or 'desc'")

    statuses = []
    for value in _csv(raw.get("status")):
        try:
            statuses.append(BookingStatus(value))
        except ValueError:
            raise ValidationError(f"Unknown status '{value}'")

    room_ids = []
    for value in _csv(raw.get("roomIds")):
        try:
            room_ids.append(uuid.UUID(value))
        except ValueError:
            raise ValidationError(f"Invalid room id '{value}'")

    is_tour = None
    if raw.get("isTour") in ("true", "false"):
        is_tour = raw["isTour"] == "true"
    elif raw.get("isTour"):
        raise ValidationError("'isTour' must be 'true' or 'false'")

    direction_value = raw.get("cursorDirection") or CursorDirection.NEXT.value
    try:
        cursor_direction = CursorDirection(direction_value)
    except ValueError:
        raise ValidationError("'cursorDirection' must be 'next' or 'prev'")

    cursor = raw.get("cursor") or None
    cursor_key = None
    if cursor:
        cursor_key = _cursor_key(decode_cursor(cursor), sort_by, sort_order)

    search = (raw.get("search") or "").strip() or None

    return ListQueryParams(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        status=statuses or None,
        date_from=_timestamp(raw, "dateRangeStart"),
        date_to=_timestamp(raw, "dateRangeEnd"),
        room_ids=room_ids or None,
        is_tour=is_tour,
        cursor=cursor,
        cursor_direction=cursor_direction,
        cursor_key=cursor_key,
    )


# --- Query building ---

def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_filters(
    query: Select, model: Any, params: ListQueryParams, *, search_columns: Sequence[str] = ()
) -> Select:
    """AND one predicate per present filter onto ``query``.

    Filters naming a column the model does not have are skipped.
    """
    if params.status and hasattr(model, "status"):
        query = query.where(model.status.in_(params.status))
    if params.date_from and hasattr(model, "created_at"):
        query = query.where(model.created_at >= params.date_from)
    if params.date_to and hasattr(model, "created_at"):
        query = query.where(model.created_at <= params.date_to)
    if params.room_ids and hasattr(model, "room_id"):
        query = query.where(model.room_id.in_(params.room_ids))
    if params.is_tour is not None and hasattr(model, "is_tour"):
        query = query.where(model.is_tour == params.is_tour)
    if params.search and search_columns:
        pattern = f"%{_escape_like(params.search)}%"
        query = query.where(
            or_(*(getattr(model, name).ilike(pattern, escape="\\") for name in search_columns))
        )
    return query


def _check_key_type(column: Any, value: Any) -> None:
    try:
        expected = column.type.python_type
    except NotImplementedError:
        return
    if issubclass(expected, enum.Enum):
        # Enum keys travel as their stored value
        fits = isinstance(value, str) and value in {member.value for member in expected}
    elif expected is int:
        fits = isinstance(value, int) and not isinstance(value, bool)
    elif expected is datetime:
        fits = isinstance(value, datetime) and value.tzinfo is not None
    else:
        fits = isinstance(value, expected)
    if not fits:
        raise InvalidCursor("Invalid cursor", details={"cursor_value": repr(value)})


def apply_pagination_and_sorting(query: Select, model: Any, params: ListQueryParams) -> Select:
    """Order by ``(sort column, id)`` and window the result.

    Cursor mode replaces the offset with a keyset predicate. The ``limit``
    is one larger than the page size to detect a following page.
    """
    sort_col = getattr(model, params.sort_by)
    id_col = model.id

    # Walking backwards means querying in the opposite order.
    descending = params.descending != params.reverse

    if params.cursor_key is not None:
        value, key_id = params.cursor_key
        _check_key_type(sort_col, value)
        if descending:
            query = query.where(or_(sort_col < value, and_(sort_col == value, id_col < key_id)))
        else:
            query = query.where(or_(sort_col > value, and_(sort_col == value, id_col > key_id)))

    if descending:
        query = query.order_by(sort_col.desc(), id_col.desc())
    else:
        query = query.order_by(sort_col.asc(), id_col.asc())

    if params.cursor_key is None:
        query = query.offset(params.offset)
    return query.limit(params.limit + 1)


def page_key(item: Any, params: ListQueryParams) -> Dict[str, Any]:
    """Cursor payload for ``item``: the ordering it belongs to plus its (sort value, id) key."""
    value = getattr(item, params.sort_by)
    if isinstance(value, datetime):
        value = as_utc(value)
    return {"f": params.sort_by, "o": params.sort_order, "k": [value, item.id]}


async def paginate(db: AsyncSession, query: Select, model: Any, params: ListQueryParams) -> PageResult:
    """Run a filtered query and build the page plus its navigation metadata."""
    count_stmt = select(func.count()).select_from(query.order_by(None).subquery())
    total_count = (await db.execute(count_stmt)).scalar_one()

    result = await db.execute(apply_pagination_and_sorting(query, model, params))
    rows = list(result.scalars().unique().all())

    has_more = len(rows) > params.limit
    rows = rows[: params.limit]

    if params.cursor_key is None:
        has_next, has_prev = has_more, params.page > 1
    elif params.reverse:
        rows.reverse()
        has_next, has_prev = True, has_more
    else:
        has_next, has_prev = has_more, True

    next_cursor = encode_cursor(page_key(rows[-1], params)) if has_next and rows else None
    prev_cursor = encode_cursor(page_key(rows[0], params)) if has_prev and rows else None

    return PageResult(
        items=rows,
        total_count=total_count,
        current_page=params.page,
        total_pages=math.ceil(total_count / params.limit) if total_count else 0,
        next_cursor=next_cursor,
        prev_cursor=prev_cursor,
        has_next=has_next,
        has_prev=has_prev,
    )
