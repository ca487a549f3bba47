"""
Query constraints and path helpers

Constraints are plain tuples so they can be built inline, compared and
serialized into stable cache keys:

    get_collection("vehicles", [Where("region", "==", "ladakh"), OrderBy("createdAt", descending=True)])

A bare 3-tuple ``(field, op, value)`` is accepted as a Where clause, matching
the ``filters: List[tuple]`` convention used elsewhere in the backend.
"""
import json
from typing import Any, Iterable, NamedTuple, Tuple, Union


class Where(NamedTuple):
    field: str
    op: str
    value: Any


class OrderBy(NamedTuple):
    field: str
    descending: bool = False


class Limit(NamedTuple):
    count: int


Constraint = Union[Where, OrderBy, Limit]


def normalize_constraints(constraints: Iterable) -> Tuple[Constraint, ...]:
    """Coerce raw tuples into typed constraints, preserving caller order"""
    normalized = []
    for constraint in constraints or ():
        if isinstance(constraint, (Where, OrderBy, Limit)):
            normalized.append(constraint)
        elif isinstance(constraint, tuple) and len(constraint) == 3:
            normalized.append(Where(*constraint))
        else:
            raise ValueError(f"Unsupported query constraint: {constraint!r}")
    return tuple(normalized)


def constraints_key(constraints: Iterable[Constraint]) -> str:
    """Stable JSON serialization of constraints for cache keys"""
    payload = [[type(c).__name__, *c] for c in normalize_constraints(constraints)]
    return json.dumps(payload, default=str, separators=(',', ':'))


def collection_cache_key(collection: str, constraints: Iterable[Constraint] = ()) -> str:
    return f"collection:{collection}:{constraints_key(constraints)}"


def document_cache_key(path: str) -> str:
    return f"doc:{path}"


def validate_document_path(path: str) -> str:
    """
    Check a document path has the collection/doc[/collection/doc...] shape

    Raises:
        ValueError: On empty segments or an odd number of segments
    """
    if not isinstance(path, str) or not path:
        raise ValueError(f"Malformed document path: {path!r}")
    segments = path.strip('/').split('/')
    if any(not segment for segment in segments) or len(segments) % 2 != 0:
        raise ValueError(f"Malformed document path: {path!r}")
    return '/'.join(segments)


def collection_of(path: str) -> str:
    """Collection path a document path belongs to (``users/u1/trips/t1`` -> ``users/u1/trips``)"""
    return validate_document_path(path).rsplit('/', 1)[0]
