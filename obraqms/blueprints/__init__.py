"""
Obra QMS
HTTP blueprints and the shared list pagination helper.
"""

from flask import request


def _int_arg(name, default):
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def paginate_query(query, default_limit=200, max_limit=1000):
    """Slice *query* by ``?limit=&offset=``; returns ``(items, total)``.

    ``total`` counts the unsliced query. Limit is clamped to 1..max_limit.
    """
    total = query.count()
    limit = min(max(_int_arg("limit", default_limit), 1), max_limit)
    offset = max(_int_arg("offset", 0), 0)
    return query.limit(limit).offset(offset).all(), total
