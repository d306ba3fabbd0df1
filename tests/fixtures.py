"""
Shared seed data for Catalog Store backed tests
"""
from datetime import datetime

from parts_search.models import CatalogItem, MatchType, VehicleDescriptor

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0)


def fixed_clock():
    return FIXED_NOW


class ManualClock:
    """Clock that only moves when told to"""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


def seed_items():
    return [
        CatalogItem(
            id="p-001",
            name="Brake Pads Front Set",
            description="Ceramic brake pads for 2016 Toyota RAV4",
            part_number="BP-1001",
            sku="SKU-BP-1001",
            price=50.0,
            stock_quantity=5,
            category_id="brakes",
            compatibility=[
                VehicleDescriptor(year="2016", make="toyota", model="rav-4", match_type=MatchType.SPECIFIC),
            ],
            created_at=datetime(2024, 1, 1),
        ),
        CatalogItem(
            id="p-002",
            name="Brake Pads Rear",
            description="Fits 2019 Honda Civic",
            part_number="BP-2002",
            sku="SKU-BP-2002",
            price=40.0,
            discount_price=35.0,
            stock_quantity=10,
            category_id="brakes",
            compatibility=[
                VehicleDescriptor(year="2019", make="honda", model="civic", match_type=MatchType.SPECIFIC),
            ],
            created_at=datetime(2024, 2, 1),
        ),
        CatalogItem(
            id="p-003",
            name="Oil Filter",
            description="Universal spin-on oil filter",
            part_number="OF-300",
            price=8.0,
            stock_quantity=0,
            category_id="filters",
            created_at=datetime(2024, 3, 1),
        ),
        CatalogItem(
            id="p-004",
            name="Brake Pads Premium",
            description="Awaiting review",
            part_number="BP-4004",
            price=90.0,
            stock_quantity=3,
            status="pending",
            created_at=datetime(2024, 4, 1),
        ),
        CatalogItem(
            id="p-005",
            name="Brake Light Bulb",
            description="Discontinued",
            part_number="BL-5005",
            price=4.0,
            stock_quantity=50,
            is_active=False,
            created_at=datetime(2024, 5, 1),
        ),
    ]
