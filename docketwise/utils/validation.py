"""
Request parsing helpers shared by the API blueprints.
"""

import re
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

EMAIL_REGEX = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MIN_PASSWORD_LENGTH = 4


class QueryParamError(ValueError):
    pass


def validate_email(email: Optional[str]) -> bool:
    return bool(email) and bool(EMAIL_REGEX.match(email.strip()))


def validate_password_strength(password: Optional[str]) -> Tuple[bool, List[str]]:
    errors = []
    if not password:
        errors.append('Password is required')
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f'Password must be at least {MIN_PASSWORD_LENGTH} characters long')
    return len(errors) == 0, errors


def parse_pagination(args, default_limit: int = 20, max_limit: int = 100) -> Tuple[int, int]:
    """Read ``page`` and ``limit`` from the query string, clamped to sane bounds."""
    try:
        page = int(args.get('page', 1))
        limit = int(args.get('limit', default_limit))
    except (TypeError, ValueError):
        raise QueryParamError('Invalid pagination parameters: page and limit must be integers')
    page = max(1, page)
    limit = max(1, min(limit, max_limit))
    return page, limit


def parse_int(args, key: str) -> Optional[int]:
    value = args.get(key)
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise QueryParamError(f'Invalid {key}')


def parse_bool(args, key: str) -> Optional[bool]:
    value = args.get(key)
    if value is None or value == '':
        return None
    return str(value).lower() in ('true', '1', 'yes')


def parse_date(args, key: str) -> Optional[date]:
    value = args.get(key)
    if not value:
        return None
    try:
        return datetime.strptime(value[:10], '%Y-%m-%d').date()
    except ValueError:
        raise QueryParamError(f'Invalid {key}. Use YYYY-MM-DD')


def parse_sort(args, allowed: List[str], default_field: str, default_order: str = 'desc') -> Tuple[str, str]:
    sort_by = args.get('sort_by') or default_field
    sort_order = (args.get('sort_order') or default_order).lower()
    if sort_by not in allowed:
        raise QueryParamError('Invalid sort_by field')
    if sort_order not in ('asc', 'desc'):
        raise QueryParamError('Invalid sort_order')
    return sort_by, sort_order


def paginated(items, total: int, page: int, limit: int) -> Dict:
    return {
        'items': items,
        'total': total,
        'page': page,
        'limit': limit,
        'total_pages': (total + limit - 1) // limit if limit else 0,
    }
