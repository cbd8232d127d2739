from dataclasses import dataclass


@dataclass(frozen=True)
class Pagination:
    limit: int
    page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def valid_pagination(
    limit: int | None, page: int | None, default_limit: int, max_limit: int
) -> Pagination:
    """Clamp caller-supplied paging to a usable window.

    A missing or non-positive limit falls back to the default, a limit above
    the ceiling is capped, and any page below 1 means the first page.
    """
    if limit is None or limit <= 0:
        limit = default_limit
    limit = min(limit, max_limit)
    if page is None or page < 1:
        page = 1
    return Pagination(limit=limit, page=page)
