"""
Translation of public query parameters into the upstream's vocabulary.

The upstream rejects empty parameter values, so nothing empty may leave the
gateway. Public names are lower camel case (``startIndex``); the upstream
expects upper camel case (``StartIndex``), with a few names that differ
outright.
"""

from typing import Any, Dict, Mapping, Optional

UPSTREAM_ALIASES: Dict[str, str] = {
    "query": "SearchTerm",
    "includeTypes": "IncludeItemTypes",
    "genreId": "GenreIds",
}


def upstream_name(name: str) -> str:
    """Map one public parameter name to the upstream's name."""
    if name in UPSTREAM_ALIASES:
        return UPSTREAM_ALIASES[name]
    return name[:1].upper() + name[1:]


def is_empty(value: Any) -> bool:
    if value is None or value == "":
        return True
    if isinstance(value, (list, tuple, set, frozenset)):
        return all(is_empty(v) for v in value)
    return False


def render_value(value: Any) -> Any:
    """Render a value the way the upstream expects it on the query string."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (set, frozenset)):
        value = sorted(value)
    if isinstance(value, (list, tuple)):
        return ",".join(str(render_value(v)) for v in value if not is_empty(v))
    return value


def clean_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Drop entries whose value is empty, keeping names as they are."""
    return {
        key: render_value(value)
        for key, value in (params or {}).items()
        if not is_empty(value)
    }


def normalize_params(params: Mapping[str, Any],
                     defaults: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Apply defaults, translate names and drop empty values.

    A default fills a key that is absent or None. An explicit empty string is
    not replaced; it is dropped like any other empty value.
    """
    merged: Dict[str, Any] = dict(defaults or {})
    for key, value in params.items():
        if value is not None or key not in merged:
            merged[key] = value

    return {upstream_name(key): value for key, value in clean_params(merged).items()}
