"""Composable filter specs rendered to MongoDB query documents.

Example:
    (Where("category") == "Smart Phone") & (Where("price") < 500)
renders to
    {"$and": [{"category": {"$eq": "Smart Phone"}}, {"price": {"$lt": 500}}]}
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping

from pydantic import BaseModel

from .models import parse_object_id

KeyResolver = Callable[[str], str]


def _identity(name: str) -> str:
    return name


class Operator(str, Enum):
    """Comparison operators understood by the store."""

    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    IN = "$in"
    NOT_IN = "$nin"
    EXISTS = "$exists"
    REGEX = "$regex"


class FilterSpec:
    """Base for all filter values."""

    def to_mongo(self, resolve: KeyResolver = _identity) -> dict[str, Any]:
        raise NotImplementedError

    def __and__(self, other: "FilterSpec") -> "And":
        return And((self, other))

    def __or__(self, other: "FilterSpec") -> "Or":
        return Or((self, other))

    def __invert__(self) -> "Not":
        return Not(self)


def _coerce_id(key: str, operator: Operator, value: Any) -> Any:
    if key != "_id":
        return value
    if operator in (Operator.IN, Operator.NOT_IN):
        return [parse_object_id(v) if isinstance(v, str) else v for v in value]
    if isinstance(value, str):
        return parse_object_id(value)
    return value


@dataclass(frozen=True)
class Condition(FilterSpec):
    """Single ``field <operator> value`` test."""

    field: str
    operator: Operator
    value: Any

    def to_mongo(self, resolve: KeyResolver = _identity) -> dict[str, Any]:
        key = resolve(self.field)
        value = _coerce_id(key, self.operator, self.value)
        if self.operator in (Operator.IN, Operator.NOT_IN):
            value = list(value)
        return {key: {self.operator.value: value}}


@dataclass(frozen=True)
class And(FilterSpec):
    """Every part must match."""

    parts: tuple[FilterSpec, ...]

    def to_mongo(self, resolve: KeyResolver = _identity) -> dict[str, Any]:
        return {"$and": [part.to_mongo(resolve) for part in self.parts]}

    def __and__(self, other: FilterSpec) -> "And":
        return And(self.parts + (other,))


@dataclass(frozen=True)
class Or(FilterSpec):
    """At least one part must match."""

    parts: tuple[FilterSpec, ...]

    def to_mongo(self, resolve: KeyResolver = _identity) -> dict[str, Any]:
        return {"$or": [part.to_mongo(resolve) for part in self.parts]}

    def __or__(self, other: FilterSpec) -> "Or":
        return Or(self.parts + (other,))


@dataclass(frozen=True)
class Not(FilterSpec):
    """Negation of a filter."""

    inner: FilterSpec

    def to_mongo(self, resolve: KeyResolver = _identity) -> dict[str, Any]:
        return {"$nor": [self.inner.to_mongo(resolve)]}


@dataclass(frozen=True)
class MatchAll(FilterSpec):
    """Matches every document."""

    def to_mongo(self, resolve: KeyResolver = _identity) -> dict[str, Any]:
        return {}


MATCH_ALL = MatchAll()


def _as_values(values: Any) -> tuple:
    # A bare string would otherwise be split into characters
    if isinstance(values, (str, bytes)):
        raise TypeError(f"Expected a collection of values, got {values!r}")
    return tuple(values)


class Where:
    """Builder for conditions on one field."""

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, name: str):
        self.name = name

    def _condition(self, operator: Operator, value: Any) -> Condition:
        return Condition(self.name, operator, value)

    def eq(self, value: Any) -> Condition:
        return self._condition(Operator.EQ, value)

    def ne(self, value: Any) -> Condition:
        return self._condition(Operator.NE, value)

    def gt(self, value: Any) -> Condition:
        return self._condition(Operator.GT, value)

    def gte(self, value: Any) -> Condition:
        return self._condition(Operator.GTE, value)

    def lt(self, value: Any) -> Condition:
        return self._condition(Operator.LT, value)

    def lte(self, value: Any) -> Condition:
        return self._condition(Operator.LTE, value)

    def in_(self, values: Any) -> Condition:
        return self._condition(Operator.IN, _as_values(values))

    def not_in(self, values: Any) -> Condition:
        return self._condition(Operator.NOT_IN, _as_values(values))

    def exists(self, present: bool = True) -> Condition:
        return self._condition(Operator.EXISTS, present)

    def regex(self, pattern: str) -> Condition:
        return self._condition(Operator.REGEX, pattern)

    __eq__ = eq  # type: ignore[assignment]
    __ne__ = ne  # type: ignore[assignment]
    __gt__ = gt
    __ge__ = gte
    __lt__ = lt
    __le__ = lte

    def __repr__(self) -> str:
        return f"Where({self.name!r})"


Filter = FilterSpec | Mapping[str, Any]


def render_filter(spec: Filter | None, resolve: KeyResolver = _identity) -> dict[str, Any]:
    """Render a filter spec or pass a raw query mapping through."""
    if spec is None:
        return {}
    if isinstance(spec, FilterSpec):
        return spec.to_mongo(resolve)
    return dict(spec)


class Projection:
    """Server-side projection into a smaller pydantic model.

    Args:
        model: Model each projected document is validated into
        fields: Stored keys to fetch; defaults to the model's own fields
    """

    def __init__(self, model: type[BaseModel], fields: list[str] | None = None):
        self.model = model
        if fields is None:
            fields = [
                info.alias or name for name, info in model.model_fields.items()
            ]
        self.fields = list(fields)

    def to_mongo(self) -> dict[str, int]:
        projection = {key: 1 for key in self.fields}
        # _id is returned unless explicitly excluded
        if "_id" not in projection:
            projection["_id"] = 0
        return projection

    def apply(self, raw: Mapping[str, Any]) -> BaseModel:
        return self.model.model_validate(raw)
