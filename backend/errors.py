from typing import Any, Dict, Iterable, Mapping

# části "loc", které nejsou názvem pole (umístění parametru, tagy diskriminované unie)
_LOCATION_PARTS = {"body", "query", "path", "header", "cookie"}
_UNION_TAGS = {"product", "door", "gate", "motor", "control_system"}


class ValidationFailed(Exception):
    """Validace selhala mimo FastAPI request parsing (např. PUT s mergem dat)."""

    def __init__(self, errors: Dict[str, str], message: str = "Validation failed"):
        super().__init__(message)
        self.message = message
        self.errors = errors


def _field_path(loc: Iterable[Any]) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in _LOCATION_PARTS:
        parts = parts[1:]
    if parts and parts[0] in _UNION_TAGS:
        parts = parts[1:]
    return ".".join(parts) or "body"


def field_messages(errors: Iterable[Mapping[str, Any]]) -> Dict[str, str]:
    """Pydantic chyby -> {"pole.cesta": "zpráva"}; první chyba pro pole vyhrává."""
    result: Dict[str, str] = {}
    for err in errors:
        path = _field_path(err.get("loc", ()))
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        result.setdefault(path, msg)
    return result
