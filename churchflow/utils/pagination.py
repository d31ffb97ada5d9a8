import math
from sqlalchemy.orm import Query


def paginate(query: Query, page: int, limit: int) -> tuple[list, dict]:
    """
    Applies offset/limit to a query and returns the page of rows together
    with the pagination block used by every list endpoint.
    """
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit),
    }
