"""Query helpers shared by list endpoints"""
import logging

logger = logging.getLogger(__name__)


def _non_negative_int(value):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 0 else None


def apply_list_query(queryset, query_params, sortable_fields=()):
    """
    Apply the list conventions to a queryset.

    Args:
        queryset: base queryset (already filtered)
        query_params: request.query_params
        sortable_fields: field names accepted by ``sort_by``

    Supported params:
        skip: number of rows to skip
        take: maximum number of rows to return
        sort_by: field to order by (ignored unless whitelisted)
        order: 'asc' (default) or 'desc'

    Invalid values are ignored rather than rejected; take=0 means no limit.
    """
    sort_by = query_params.get('sort_by')
    if sort_by:
        if sort_by in sortable_fields:
            order = (query_params.get('order') or 'asc').lower()
            queryset = queryset.order_by(f"-{sort_by}" if order == 'desc' else sort_by)
        else:
            logger.debug(f"Ignoring sort_by={sort_by!r}, allowed: {list(sortable_fields)}")

    skip = _non_negative_int(query_params.get('skip')) or 0
    take = _non_negative_int(query_params.get('take'))
    if take:
        return queryset[skip:skip + take]
    if skip:
        return queryset[skip:]
    return queryset
