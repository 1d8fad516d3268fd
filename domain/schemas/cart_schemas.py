from pydantic import BaseModel, Field
from typing import Optional, List, Union
from decimal import Decimal

# Raw catalog prices arrive either as integer cents or as currency units;
# services.pricing.normalize_price canonicalizes them before any arithmetic.
RawPrice = Union[int, float, Decimal]


class MenuCategoryRef(BaseModel):
    """Category summary embedded in a menu item"""

    id: str
    name: str
    slug: str = ""


class Modifier(BaseModel):
    """A selectable option inside a modifier group"""

    id: str
    name: str
    price: RawPrice = 0
    price_adjustment: Optional[RawPrice] = Field(
        None, description="Alias for price used by some catalog sources"
    )
    calories: Optional[int] = None
    is_default: bool = False


class ModifierGroup(BaseModel):
    """Group of modifiers offered for a menu item (e.g. 'Add Cheese')"""

    id: str
    name: str
    description: Optional[str] = None
    is_required: bool = False
    min_select: int = 0
    max_select: int = 1
    modifiers: List[Modifier] = Field(default_factory=list)


class MenuItem(BaseModel):
    """Menu item as supplied by the catalog source (already validated upstream)"""

    id: str
    name: str
    price: RawPrice
    category_id: Optional[str] = None
    description: str = ""
    image_url: Optional[str] = None
    calories: Optional[int] = None
    ingredients: List[str] = Field(default_factory=list)
    category: Optional[MenuCategoryRef] = None
    modifier_groups: List[ModifierGroup] = Field(default_factory=list)


class CartItemModifier(BaseModel):
    """Modifier chosen for a cart line, carrying its price delta"""

    group_id: str = ""
    group_name: str = ""
    modifier_id: str = ""
    modifier_name: str = ""
    price_adjustment: RawPrice = 0


class AddOnOption(BaseModel):
    """Priced add-on offered for a cart line"""

    name: str
    price_adjustment: RawPrice


class CartItem(BaseModel):
    """A single cart line. Owned and mutated exclusively by CartStore."""

    id: str
    menu_item_id: str
    name: str
    unit_price: Decimal = Field(..., description="Normalized price in currency units")
    quantity: int = Field(..., ge=1)
    modifiers: List[CartItemModifier] = Field(default_factory=list)
    special_instructions: Optional[str] = None
    image: Optional[str] = None
    ingredient_options: List[str] = Field(default_factory=list)
    selected_ingredients: Optional[List[str]] = None
    add_on_options: List[AddOnOption] = Field(default_factory=list)
    selected_add_ons: Optional[List[str]] = None


class Cart(BaseModel):
    """Cart snapshot. Monetary fields are always derived from items."""

    items: List[CartItem] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    @classmethod
    def empty(cls) -> "Cart":
        return cls()
