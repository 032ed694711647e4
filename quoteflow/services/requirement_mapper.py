"""
Requirement to line item mapping.

A requirement becomes one line item with quantity 1. Its unit price is
estimated_hours * hourly_rate when both are known, otherwise 0 so the
item can be priced by hand.
"""

import logging
from typing import Any, Iterable, Optional, Sequence

from quoteflow.exceptions import EmptySelectionError, ValidationError

logger = logging.getLogger(__name__)

APPROVED = "approved"


def _field(record: Any, name: str, default=None):
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def select_requirements(
    requirements: Iterable[Any],
    explicit_ids: Optional[Sequence[str]] = None,
) -> list:
    """
    Resolve which requirements go into the quote.

    With explicit ids, requirements whose id is listed are kept in source
    order and unknown ids are ignored. Without ids, every approved
    requirement is kept.
    """
    requirements = list(requirements)
    if explicit_ids:
        wanted = {str(i) for i in explicit_ids}
        selected = [r for r in requirements if str(_field(r, "id")) in wanted]
        unknown = wanted - {str(_field(r, "id")) for r in selected}
        if unknown:
            logger.info("Ignoring %d unknown requirement id(s): %s", len(unknown), sorted(unknown))
    else:
        selected = [r for r in requirements if _field(r, "status") == APPROVED]

    if not selected:
        raise EmptySelectionError(
            "No requirements to quote: select requirement ids or approve at least one requirement"
        )
    return selected


def requirement_unit_price(estimated_hours: Optional[float], hourly_rate: float) -> float:
    if hourly_rate > 0 and estimated_hours and estimated_hours > 0:
        return estimated_hours * hourly_rate
    return 0.0


def map_requirements_to_items(requirements: Iterable[Any], hourly_rate: float) -> list[dict]:
    """Turn requirement records into quote line items."""
    if hourly_rate is None or hourly_rate < 0:
        raise ValidationError(f"Hourly rate must be >= 0, got {hourly_rate}")

    items = []
    for requirement in requirements:
        unit_price = requirement_unit_price(_field(requirement, "estimated_hours"), hourly_rate)
        items.append({
            "name": _field(requirement, "title"),
            "description": _field(requirement, "description") or "",
            "quantity": 1,
            "unit_price": unit_price,
            "total_price": unit_price,
        })
    return items
