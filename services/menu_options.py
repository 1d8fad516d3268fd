"""Ingredient and add-on options derived from catalog menu items"""

from typing import Dict, List, Optional, Tuple

from domain.schemas import AddOnOption, MenuItem
from services.pricing import ZERO, normalize_price

ADD_ON_KEYWORDS: Tuple[str, ...] = (
    "bacon",
    "egg",
    "cheese",
    "avocado",
    "mushroom",
    "jalapeno",
    "onion",
    "pickle",
    "extra",
    "add",
)

DEFAULT_INGREDIENTS: Dict[str, List[str]] = {
    "burger": ["Lettuce", "Tomato", "Onion", "Pickles", "Cheese", "Sauce"],
    "sandwich": ["Lettuce", "Tomato", "Onion", "Cheese", "Sauce"],
    "salad": ["Lettuce", "Tomato", "Onion", "Croutons", "Cheese"],
    "breakfast": ["Egg", "Cheese", "Sausage", "Bacon"],
    "dessert": ["Whipped Cream", "Chocolate Drizzle"],
    "sides": ["Salt", "Sauce"],
    "default": ["Lettuce", "Tomato", "Onion", "Pickles"],
}

# Checked in order; first match wins.
INGREDIENT_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("burger",), "burger"),
    (("sandwich", "wrap"), "sandwich"),
    (("salad", "soup"), "salad"),
    (("breakfast", "omelet"), "breakfast"),
    (("dessert", "shake", "ice cream"), "dessert"),
    (("fries", "side"), "sides"),
)


def _is_add_on_label(label: Optional[str]) -> bool:
    value = (label or "").lower()
    return any(keyword in value for keyword in ADD_ON_KEYWORDS)


def get_add_on_options(menu_item: Optional[MenuItem]) -> List[AddOnOption]:
    """
    Priced, optional modifiers that read as add-ons (bacon, extra cheese...).

    Required groups are skipped, as are free modifiers. A modifier counts when
    its own name or its group's name carries an add-on keyword. Names are
    de-duplicated, first occurrence wins.
    """
    if menu_item is None or not menu_item.modifier_groups:
        return []

    options: List[AddOnOption] = []
    seen = set()
    for group in menu_item.modifier_groups:
        if group.is_required:
            continue
        group_matches = _is_add_on_label(group.name)
        for modifier in group.modifiers:
            raw = modifier.price_adjustment if modifier.price_adjustment is not None else modifier.price
            if normalize_price(raw) <= ZERO:
                continue
            if not (group_matches or _is_add_on_label(modifier.name)):
                continue
            if modifier.name in seen:
                continue
            seen.add(modifier.name)
            options.append(AddOnOption(name=modifier.name, price_adjustment=raw))
    return options


def get_ingredient_options(menu_item: Optional[MenuItem]) -> List[str]:
    """Removable ingredients: explicit catalog list, else a category default"""
    if menu_item is None:
        return list(DEFAULT_INGREDIENTS["default"])

    explicit = [name for name in menu_item.ingredients if name]
    if explicit:
        return list(dict.fromkeys(explicit))

    category = menu_item.category
    haystack = " ".join(
        [
            (category.name if category else "").lower(),
            (category.slug if category else "").lower(),
            menu_item.name.lower(),
        ]
    )
    for keywords, group in INGREDIENT_RULES:
        if any(keyword in haystack for keyword in keywords):
            return list(DEFAULT_INGREDIENTS[group])
    return list(DEFAULT_INGREDIENTS["default"])
