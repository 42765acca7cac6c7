"""
Datatype handlers.

Each built-in datatype converts between its native Python value and the
scalar that appears on the wire. For every handler and every valid value
`v`, `deserialize(serialize(v)) == v`.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict

from bdio.datatype.content import ContentRange, MediaType
from bdio.datatype.digest import Digest
from bdio.datatype.product import Products
from bdio.errors import InvalidInput
from bdio.vocabulary import Datatype


class DatatypeHandler:
    """Conversion rules for one datatype."""

    datatype: Datatype = Datatype.DEFAULT
    value_type: type = object

    @property
    def name(self) -> str:
        return self.value_type.__name__

    def is_instance(self, value: Any) -> bool:
        return isinstance(value, self.value_type)

    def serialize(self, value: Any) -> Any:
        return None if value is None else str(value)

    def deserialize(self, value: Any) -> Any:
        if value is None or self.is_instance(value):
            return value
        if isinstance(value, str):
            return self.parse(value)
        raise InvalidInput(value, self.name)

    def parse(self, text: str) -> Any:
        raise InvalidInput(text, self.name)


class DefaultHandler(DatatypeHandler):
    """JSON scalars pass through unchanged; anything else becomes a string."""

    datatype = Datatype.DEFAULT

    @property
    def name(self) -> str:
        return "Default"

    def is_instance(self, value: Any) -> bool:
        return value is None or isinstance(value, (str, int, float, bool))

    def serialize(self, value: Any) -> Any:
        return value if self.is_instance(value) else str(value)

    def deserialize(self, value: Any) -> Any:
        return value if self.is_instance(value) else str(value)


class DateTimeHandler(DatatypeHandler):
    """
    Timezone-aware datetimes in ISO 8601 form.

    Naive values are taken as UTC and come back aware, so they are outside
    the round trip domain; NodeBuilder stores them as UTC up front.
    """

    datatype = Datatype.DATE_TIME
    value_type = datetime

    @property
    def name(self) -> str:
        return "DateTime"

    def serialize(self, value: Any) -> Any:
        if value is None:
            return None
        return _aware(value).isoformat()

    def deserialize(self, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, datetime):
            return _aware(value)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        if isinstance(value, str):
            return self.parse(value)
        raise InvalidInput(value, self.name)

    def parse(self, text: str) -> datetime:
        # fromisoformat only accepts a trailing "Z" from Python 3.11
        candidate = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
        try:
            return _aware(datetime.fromisoformat(candidate))
        except ValueError:
            raise InvalidInput(text, self.name) from None


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DigestHandler(DatatypeHandler):
    datatype = Datatype.DIGEST
    value_type = Digest

    def parse(self, text: str) -> Digest:
        return Digest.parse(text)


class LongHandler(DatatypeHandler):
    """64-bit integers; numeric strings and integral floats are coerced."""

    datatype = Datatype.LONG
    value_type = int

    @property
    def name(self) -> str:
        return "Long"

    def is_instance(self, value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool)

    def serialize(self, value: Any) -> Any:
        return value

    def deserialize(self, value: Any) -> Any:
        if value is None or self.is_instance(value):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            return self.parse(value)
        raise InvalidInput(value, self.name)

    def parse(self, text: str) -> int:
        try:
            return int(text.strip())
        except ValueError:
            raise InvalidInput(text, self.name) from None


class ProductsHandler(DatatypeHandler):
    datatype = Datatype.PRODUCTS
    value_type = Products

    def parse(self, text: str) -> Products:
        return Products.parse(text)


class ContentRangeHandler(DatatypeHandler):
    datatype = Datatype.CONTENT_RANGE
    value_type = ContentRange

    def parse(self, text: str) -> ContentRange:
        return ContentRange.parse(text)


class ContentTypeHandler(DatatypeHandler):
    datatype = Datatype.CONTENT_TYPE
    value_type = MediaType

    @property
    def name(self) -> str:
        return "ContentType"

    def parse(self, text: str) -> MediaType:
        return MediaType.parse(text)


# Declaration order matters: the first handler accepting a value serializes it
HANDLERS: Dict[Datatype, DatatypeHandler] = {
    handler.datatype: handler
    for handler in (
        DefaultHandler(),
        DateTimeHandler(),
        DigestHandler(),
        LongHandler(),
        ProductsHandler(),
        ContentRangeHandler(),
        ContentTypeHandler(),
    )
}


def handler_for(datatype: Datatype) -> DatatypeHandler:
    """Return the built-in handler for a datatype."""
    return HANDLERS[datatype]
