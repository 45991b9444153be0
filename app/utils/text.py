"""Slug and code helpers used by the admin CRUD screens."""
import re

_NON_SLUG = re.compile(r'[^a-z0-9]+')
_NON_CODE = re.compile(r'[^A-Z0-9]')


def slugify(value: str) -> str:
    """
    Lowercase, collapse runs of non-alphanumerics into '-', trim dashes.

    Examples:
        slugify("Silver Hoop Earrings") -> "silver-hoop-earrings"
        slugify("  Rose & Gold!! ") -> "rose-gold"
    """
    if not value:
        return ''
    return _NON_SLUG.sub('-', value.lower()).strip('-')


def promotion_code(name: str) -> str:
    """
    Build a promotion code from its name: uppercase, alphanumerics only,
    at most 10 characters.

    Examples:
        promotion_code("Summer Sale 2024") -> "SUMMERSALE"
    """
    if not name:
        return ''
    return _NON_CODE.sub('', name.upper())[:10]
