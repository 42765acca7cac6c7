"""
Product tokens, as used in HTTP User-Agent style headers.

A product is `name[/version][ (comment)]`. A product list is a sequence of
products separated by whitespace, most significant first. Comments may
contain spaces and may be several parenthesized groups in a row, which all
belong to the preceding product.

Example:
    products = Products.parse("foo/1.0 (bar) (gus) baz")
    products.most_significant().comment  # "(bar) (gus)"
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Union

from bdio.errors import InvalidInput

_TOKEN_SPECIALS = set("!#$%&'*+-.^_`|~")


def _is_token(text: Optional[str]) -> bool:
    return bool(text) and all(
        (c.isascii() and c.isalnum()) or c in _TOKEN_SPECIALS for c in text
    )


def _is_comment_char(c: str) -> bool:
    code = ord(c)
    return c == "\t" or 0x20 <= code <= 0x7E or 0x80 <= code <= 0xFF


def _is_comment(text: str) -> bool:
    if not text.startswith("(") or not text.endswith(")"):
        return False
    depth = 0
    for c in text:
        if not _is_comment_char(c):
            return False
        if c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


@dataclass(frozen=True, slots=True)
class Product:
    """
    A single product token. Equality ignores the comment.

    Attributes:
        name: Product name (token characters only)
        version: Optional version (token characters only)
        comment: Optional comment including its parentheses
    """
    name: str
    version: Optional[str] = None
    comment: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        if not _is_token(self.name):
            raise InvalidInput(self.name, "Product")
        if self.version is not None and not _is_token(self.version):
            raise InvalidInput(self.version, "Product")
        if self.comment is not None and not _is_comment(self.comment):
            raise InvalidInput(self.comment, "Product")

    @classmethod
    def parse(cls, text: str) -> "Product":
        """Parse `name[/version][ (comment)]`."""
        if not isinstance(text, str):
            raise InvalidInput(text, "Product")
        name, version, comment = text, None, None
        slash = text.find("/")
        if slash > 0:
            name, version = text[:slash], text[slash + 1:]
        tail = version if version is not None else name
        paren = tail.find("(")
        if paren > 0:
            comment = tail[paren:]
            tail = tail[:paren].rstrip()
            if version is not None:
                version = tail
            else:
                name = tail
        return cls(name, version, comment)

    def with_comment(self, comment: Optional[str]) -> "Product":
        return Product(self.name, self.version, comment)

    def append_comment(self, comment: str) -> "Product":
        if self.comment is None:
            return self.with_comment(comment)
        return self.with_comment(f"{self.comment} {comment}")

    def without_comment(self) -> "Product":
        return Product(self.name, self.version)

    def __str__(self) -> str:
        text = self.name
        if self.version is not None:
            text += "/" + self.version
        if self.comment is not None:
            text += " " + self.comment
        return text


def _split_products(text: str) -> List[str]:
    # Whitespace separates products, unless it is followed by a comment.
    parts = []
    start = 0
    depth = 0
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c == "(":
            depth += 1
        elif c == ")":
            depth = max(depth - 1, 0)
        elif c in " \t" and depth == 0:
            j = i
            while j < n and text[j] in " \t":
                j += 1
            if j < n and text[j] == "(" and i > start:
                i = j
                continue
            if i > start:
                parts.append(text[start:i])
            start = i = j
            continue
        i += 1
    if start < n:
        parts.append(text[start:])
    return parts


class Products:
    """An ordered, non-empty list of products, most significant first."""

    __slots__ = ("_products",)

    def __init__(self, products: Iterable[Product]):
        self._products = tuple(products)
        if not self._products:
            raise InvalidInput("", "Products")

    @classmethod
    def parse(cls, text: str) -> "Products":
        """
        Parse a whitespace separated product list.

        Raises:
            InvalidInput: If the text is empty or any product is malformed
        """
        if not isinstance(text, str):
            raise InvalidInput(text, "Products")
        try:
            return cls(Product.parse(part) for part in _split_products(text))
        except InvalidInput:
            raise InvalidInput(text, "Products") from None

    @classmethod
    def builder(cls) -> "ProductsBuilder":
        return ProductsBuilder()

    def most_significant(self) -> Product:
        return self._products[0]

    def without_comments(self) -> "Products":
        return Products(p.without_comment() for p in self._products)

    def __iter__(self) -> Iterator[Product]:
        return iter(self._products)

    def __len__(self) -> int:
        return len(self._products)

    def __getitem__(self, index: int) -> Product:
        return self._products[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Products):
            return NotImplemented
        return self._products == other._products

    def __hash__(self) -> int:
        return hash(self._products)

    def __str__(self) -> str:
        return " ".join(str(p) for p in self._products)

    def __repr__(self) -> str:
        return f"Products({str(self)!r})"


class ProductsBuilder:
    """Accumulates products, keeping the first occurrence of each name/version."""

    def __init__(self):
        self._products: List[Product] = []

    def add_product(
        self,
        product: Union[Product, str],
        version: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> "ProductsBuilder":
        if not isinstance(product, Product):
            product = Product(product, version, comment)
        if product not in self._products:
            self._products.append(product)
        return self

    def add_products(self, products: Iterable[Product]) -> "ProductsBuilder":
        for product in products:
            self.add_product(product)
        return self

    def build(self) -> Products:
        return Products(self._products)
