"""
Product resolver.

Locates exactly one active finished-good product from free text. An exact
(case-insensitive) name match wins; otherwise the term is matched as a
case-insensitive substring of the name. More than one candidate is never
guessed at: the caller gets ``AmbiguousProductMatch`` with the names.
"""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from mfgorders.core.errors import AmbiguousProductMatch, ProductNotFound, RequestValidationFailed
from mfgorders.db.models.catalog import FINISHED_GOOD, Product

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"


def like_pattern(term: str) -> str:
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def _finished_goods(db: Session):
    return db.query(Product).filter(Product.category == FINISHED_GOOD, Product.is_active == True)  # noqa: E712


def search_finished_goods(db: Session, term: str, limit: int = 20) -> list[Product]:
    """Substring search over active finished goods, ordered by name (autocomplete)."""
    q = _finished_goods(db)
    term = (term or "").strip()
    if term:
        q = q.filter(Product.name.ilike(like_pattern(term), escape=LIKE_ESCAPE))
    return q.order_by(Product.name.asc(), Product.sku.asc()).limit(limit).all()


def resolve_product(db: Session, search: str) -> Product:
    term = (search or "").strip()
    if not term:
        raise RequestValidationFailed(["product_search: must not be empty"])

    exact = (
        _finished_goods(db)
        .filter(func.lower(Product.name) == term.lower())
        .order_by(Product.name.asc(), Product.sku.asc())
        .all()
    )
    if len(exact) == 1:
        return exact[0]
    if len(exact) > 1:
        logger.warning("product search %r is ambiguous (%d exact matches)", term, len(exact))
        raise AmbiguousProductMatch(term, [f"{p.name} ({p.sku})" for p in exact])

    matches = (
        _finished_goods(db)
        .filter(Product.name.ilike(like_pattern(term), escape=LIKE_ESCAPE))
        .order_by(Product.name.asc(), Product.sku.asc())
        .all()
    )
    if not matches:
        logger.warning("product search %r matched no finished good", term)
        raise ProductNotFound(term)
    if len(matches) > 1:
        logger.warning("product search %r is ambiguous (%d matches)", term, len(matches))
        raise AmbiguousProductMatch(term, [f"{p.name} ({p.sku})" for p in matches])
    return matches[0]
