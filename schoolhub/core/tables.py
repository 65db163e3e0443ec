from dataclasses import dataclass


@dataclass(frozen=True)
class TableParams:
    offset: int
    limit: int
    sort: str
    order: str
    search: str


def _int(raw, default: int, minimum: int = 0) -> int:
    try:
        return max(int(raw), minimum)
    except (TypeError, ValueError):
        return default


def table_params(request, allowed_sorts, default_sort: str = "id", default_limit: int = 10) -> TableParams:
    """
    Read the offset/limit/sort/order/search query string used by list endpoints.
    Sort columns outside `allowed_sorts` fall back to `default_sort`.
    """
    sort = (request.GET.get("sort") or default_sort).strip()
    if sort not in allowed_sorts:
        sort = default_sort
    order = (request.GET.get("order") or "DESC").strip().upper()
    if order not in ("ASC", "DESC"):
        order = "DESC"
    return TableParams(
        offset=_int(request.GET.get("offset"), 0),
        limit=_int(request.GET.get("limit"), default_limit, minimum=1),
        sort=sort,
        order=order,
        search=(request.GET.get("search") or "").strip(),
    )


def page(qs, params: TableParams):
    total = qs.count()
    ordering = params.sort if params.order == "ASC" else f"-{params.sort}"
    rows = qs.order_by(ordering)[params.offset:params.offset + params.limit]
    return total, rows
