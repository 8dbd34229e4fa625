"""
Limit validation and page slicing shared by the ranked-list services
"""
import math
from typing import List, Sequence, Tuple, TypeVar

from learnhub.core.error_handling import InvalidInputError
from learnhub.models.common import Pagination

T = TypeVar("T")


def validate_limit(limit: int, maximum: int, name: str = "limit") -> int:
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
        raise InvalidInputError(f"{name} must be a positive integer", {name: limit})
    if limit > maximum:
        raise InvalidInputError(f"{name} must not exceed {maximum}", {name: limit, "maximum": maximum})
    return limit


def validate_page(page: int) -> int:
    if not isinstance(page, int) or isinstance(page, bool) or page < 1:
        raise InvalidInputError("page must be >= 1", {"page": page})
    return page


def paginate(items: Sequence[T], page: int, limit: int) -> Tuple[List[T], bool]:
    """Slice one page; the flag is true while items remain past this page"""
    offset = (page - 1) * limit
    return list(items[offset:offset + limit]), offset + limit < len(items)


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit))
