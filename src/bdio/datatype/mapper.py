"""
ValueObjectMapper: converts between wire value objects and native values.

On the wire a typed scalar is a value object, `{"@value": ..., "@type": iri}`;
a reference to another node is `{"@id": iri}`; plain JSON scalars appear bare.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from bdio.datatype.handlers import HANDLERS, DatatypeHandler
from bdio.errors import UnsupportedType
from bdio.terms import Identifier, JsonLdKeyword
from bdio.vocabulary import BdioClass, Datatype

logger = logging.getLogger(__name__)

MultiValuePolicy = Callable[[List[Any]], Any]

ID = JsonLdKeyword.ID.value
TYPE = JsonLdKeyword.TYPE.value
VALUE = JsonLdKeyword.VALUE.value


def unwrap_single(values: List[Any]) -> Any:
    """Default multi-value policy: a one-element collection becomes its element."""
    return values[0] if len(values) == 1 else values


class ValueObjectMapper:
    """
    Bidirectional value conversion driven by datatype handlers.

    Example:
        mapper = ValueObjectMapper()
        mapper.to_value_object(Digest("sha1", "abc"))
        # {"@type": "https://blackducksoftware.github.io/bdio#Digest", "@value": "sha1:abc"}
        mapper.from_field_value({"@type": Datatype.LONG.iri, "@value": "10"})
        # 10
    """

    def __init__(
        self,
        handlers: Optional[Dict[str, DatatypeHandler]] = None,
        embedded_types: Optional[Iterable[str]] = None,
        multi_value_policy: MultiValuePolicy = unwrap_single,
    ):
        """
        Args:
            handlers: Handlers keyed by datatype IRI, in declaration order;
                defaults to the built-in handlers. A handler registered under
                "" replaces the Default handler.
            embedded_types: Type IRIs whose values are written inline
            multi_value_policy: How decoded collections are re-collected
        """
        if handlers is None:
            handlers = {datatype.iri: handler for datatype, handler in HANDLERS.items()}
        self._handlers: Dict[str, DatatypeHandler] = dict(handlers)
        self._default = self._handlers.get("", HANDLERS[Datatype.DEFAULT])
        if embedded_types is None:
            embedded_types = [c.iri for c in BdioClass if c.embedded]
        self._embedded_types = frozenset(embedded_types)
        self._multi_value_policy = multi_value_policy

    def handler(self, datatype_iri: Optional[str]) -> DatatypeHandler:
        """Return the handler for a datatype IRI, falling back to Default."""
        handler = self._handlers.get(datatype_iri or "")
        if handler is None:
            logger.warning(f"Unrecognized datatype {datatype_iri}, using Default")
            return self._default
        return handler

    def is_embedded(self, types: Any) -> bool:
        """Check if a type (or any of a list of types) is an embedded type."""
        if isinstance(types, (list, tuple, set, frozenset)):
            return any(self.is_embedded(t) for t in types)
        return str(types) in self._embedded_types

    # =========================================================================
    # Wire -> native
    # =========================================================================

    def from_field_value(self, value: Any, policy: Optional[MultiValuePolicy] = None) -> Any:
        """
        Convert a wire field value to a native value.

        Collections are converted element-wise and re-collected with the
        multi-value policy. A map holding only "@id" is a reference and becomes
        the identifier string. A value object is dispatched on its "@type";
        unknown types use the Default handler. Anything else is returned as is.

        Raises:
            InvalidInput: If a known datatype rejects the value
        """
        if isinstance(value, list):
            collect = policy or self._multi_value_policy
            return collect([self.from_field_value(v, policy) for v in value])
        if isinstance(value, dict):
            if VALUE in value:
                return self.handler(value.get(TYPE)).deserialize(value[VALUE])
            if len(value) == 1 and ID in value:
                return value[ID]
        return value

    # =========================================================================
    # Native -> wire
    # =========================================================================

    def to_value_object(self, value: Any) -> Any:
        """
        Convert a native value to its wire form.

        Raises:
            UnsupportedType: If no handler accepts the value
        """
        if self._default.is_instance(value):
            return self._default.serialize(value)
        for datatype_iri, handler in self._handlers.items():
            if datatype_iri and handler.is_instance(value):
                return {TYPE: datatype_iri, VALUE: handler.serialize(value)}
        raise UnsupportedType(value)

    def to_typed_value_object(self, datatype: Datatype, value: Any) -> Any:
        """Convert a value declared with a specific datatype, coercing it first."""
        if datatype is Datatype.DEFAULT:
            return self.to_value_object(value)
        handler = self.handler(datatype.iri)
        return {TYPE: datatype.iri, VALUE: handler.serialize(handler.deserialize(value))}

    def to_reference_value_object(self, value: Any) -> Any:
        """
        Convert a reference to its wire form.

        Maps of an embedded type pass through; identifiers and strings are
        wrapped as `{"@id": value}`.
        """
        if isinstance(value, dict):
            if self.is_embedded(value.get(TYPE, ())) or ID in value:
                return value
            raise UnsupportedType(value)
        if isinstance(value, (str, Identifier)):
            return {ID: str(value)}
        raise UnsupportedType(value)
