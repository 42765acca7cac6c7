"""
BDIO datatypes and value object mapping.

Supports:
- Digest ("sha1:...")
- Product / Products (User-Agent style product lists)
- ContentRange (RFC 7233) and MediaType (RFC 7231)
- Datatype handlers for every built-in datatype
- ValueObjectMapper for wire value objects
"""

from bdio.datatype.content import ContentRange, MediaType
from bdio.datatype.digest import Digest
from bdio.datatype.handlers import HANDLERS, DatatypeHandler, handler_for
from bdio.datatype.mapper import ValueObjectMapper, unwrap_single
from bdio.datatype.product import Product, Products, ProductsBuilder

__all__ = [
    "ContentRange",
    "MediaType",
    "Digest",
    "Product",
    "Products",
    "ProductsBuilder",
    "DatatypeHandler",
    "HANDLERS",
    "handler_for",
    "ValueObjectMapper",
    "unwrap_single",
]
