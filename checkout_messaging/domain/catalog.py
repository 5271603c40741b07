"""Static catalog of complimentary add-on kinds bundled with subscriptions"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class AddOn:
    """Catalog entry for one add-on kind"""

    kind: str
    name: str
    plural: str
    icon: str
    product_handle: str


UNKNOWN_ICON = "📦"

ADD_ONS: Dict[str, AddOn] = {
    "glass": AddOn("glass", "Premium Glass", "Premium Glasses", "🍷", "premium-glass"),
    "bottle": AddOn("bottle", "Bottle", "Bottles", "🍾", "wine-bottle"),
    "accessory": AddOn("accessory", "Wine Accessory", "Wine Accessories", "🔧", "wine-accessory"),
    "sticker": AddOn("sticker", "Sticker", "Stickers", "✨", "sticker-pack"),
    "sample": AddOn("sample", "Sample", "Samples", "🎁", "wine-sample"),
}


def get_add_on(kind: str) -> Optional[AddOn]:
    return ADD_ONS.get(kind)


def is_valid_add_on(kind: str) -> bool:
    return kind in ADD_ONS


def supported_add_ons() -> List[str]:
    return list(ADD_ONS)


def add_on_icon(kind: str) -> str:
    add_on = get_add_on(kind)
    return add_on.icon if add_on else UNKNOWN_ICON


def add_on_title(kind: str, count: int) -> str:
    """Singular or plural display name for a kind"""
    add_on = get_add_on(kind)
    if add_on is None:
        return "Unknown Add-On" if count == 1 else "Unknown Add-Ons"
    return add_on.name if count == 1 else add_on.plural


def format_add_on_name(kind: str, count: int) -> str:
    """Format an add-on with its quantity, e.g. 4 Premium Glasses"""
    return f"{count} {add_on_title(kind, count)}"
