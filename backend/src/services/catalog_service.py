"""
Service for catalog lookups.

The catalog is the only source of prices for invoices. Lookups return the
current authoritative unit price; inactive or missing items resolve to None so
the invoice builder can skip them without failing the whole request.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Any

from sqlalchemy.orm import Session

from models.service_item import ServiceItem
from services.billing_calculations import to_money

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Other Services"


@dataclass(frozen=True)
class CatalogItem:
    """Priced catalog entry as seen by the invoice builder."""
    id: int
    name: str
    unit_price: Decimal
    is_active: bool


class CatalogService:
    """Service for catalog (service item) lookups."""

    @staticmethod
    def get_active_item(db: Session, service_item_id: int) -> Optional[CatalogItem]:
        """
        Resolve a service item to its current price.

        Args:
            db: Database session
            service_item_id: ID of the service item

        Returns:
            CatalogItem, or None if the item does not exist or is inactive
        """
        item = db.query(ServiceItem).filter(ServiceItem.id == service_item_id).first()
        if not item or not item.is_active:
            return None
        return CatalogItem(
            id=item.id,
            name=item.name,
            unit_price=to_money(item.unit_price),
            is_active=item.is_active,
        )

    @staticmethod
    def list_service_items(db: Session, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        List active service items grouped by category.

        Args:
            db: Database session
            search: Optional case-insensitive substring of the item name

        Returns:
            List of {"category": str, "items": [...]} groups, sorted by category
        """
        query = db.query(ServiceItem).filter(ServiceItem.is_active == True)
        if search and search.strip():
            query = query.filter(ServiceItem.name.ilike(f"%{search.strip()}%"))

        items = query.order_by(ServiceItem.category, ServiceItem.display_order, ServiceItem.name).all()

        groups: Dict[str, List[Dict[str, Any]]] = {}
        for item in items:
            category = item.category or UNCATEGORIZED
            groups.setdefault(category, []).append({
                "id": item.id,
                "name": item.name,
                "unit": item.unit,
                "unit_price": to_money(item.unit_price),
            })

        return [
            {"category": category, "items": group_items}
            for category, group_items in sorted(groups.items())
        ]
