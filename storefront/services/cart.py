from dataclasses import dataclass, field
from typing import Callable, List, Optional
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select, delete
from storefront.models.cart import CartItem, CartLine, utc_now


@dataclass
class CartChange:
    """One mutation of a cart, with the lines as they are afterwards"""
    kind: str  # add | update | remove | clear
    items: List[CartLine]
    product_id: Optional[str] = None
    quantity: int = 0  # added amount for "add", new quantity for "update"
    line: Optional[CartLine] = field(default=None)


CartListener = Callable[[CartChange], None]


class CartStore:
    """
    Single owner of a shopper's in-progress selection.

    Lines are keyed by product id and kept in insertion order. Every mutation
    notifies subscribers with a CartChange.
    """

    def __init__(self, cart_id: str, items: Optional[List[CartLine]] = None):
        self.cart_id = cart_id
        self._items: List[CartLine] = list(items or [])
        self._listeners: List[CartListener] = []

    @property
    def items(self) -> List[CartLine]:
        return [item.model_copy() for item in self._items]

    @property
    def subtotal(self) -> float:
        return round(sum(item.price * item.quantity for item in self._items), 2)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Register a change listener; returns the function that removes it"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def reset(self, items: List[CartLine]) -> None:
        """Replace the lines with a stored version, without notifying"""
        self._items = list(items)

    def _find(self, product_id: str) -> Optional[CartLine]:
        return next((item for item in self._items if item.product_id == product_id), None)

    def _notify(self, kind: str, **details) -> None:
        change = CartChange(kind=kind, items=self.items, **details)
        for listener in list(self._listeners):
            listener(change)

    def add_item(self, product_id: str, name: str, price: float, image: Optional[str] = None, quantity: int = 1) -> CartLine:
        """Add item to cart or increase its quantity if already present"""
        if quantity < 1:
            raise ValueError("quantity must be at least 1")

        existing_item = self._find(product_id)
        if existing_item:
            existing_item.quantity += quantity
            item = existing_item
        else:
            item = CartLine(product_id=product_id, name=name, price=price, image=image, quantity=quantity)
            self._items.append(item)

        added = item.model_copy()
        self._notify("add", product_id=product_id, quantity=quantity, line=added)
        return added

    def update_quantity(self, product_id: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line"""
        if quantity <= 0:
            self.remove_item(product_id)
            return

        item = self._find(product_id)
        if not item:
            return
        item.quantity = quantity
        self._notify("update", product_id=product_id, quantity=quantity)

    def remove_item(self, product_id: str) -> None:
        self._items = [item for item in self._items if item.product_id != product_id]
        self._notify("remove", product_id=product_id)

    def clear(self) -> None:
        self._items = []
        self._notify("clear")


class CartRepository:
    """
    Durable storage of carts in the local database.

    Changes are written line by line, so two requests working on the same
    cart each keep their own edits.
    """

    def __init__(self, session: Session):
        self.session = session

    def load(self, cart_id: str) -> List[CartLine]:
        rows = self.session.exec(
            select(CartItem).where(CartItem.cart_id == cart_id).order_by(CartItem.position)
        ).all()
        return [
            CartLine(
                product_id=row.product_id,
                name=row.name,
                price=row.price,
                quantity=row.quantity,
                image=row.image,
            )
            for row in rows
        ]

    def apply(self, cart_id: str, change: CartChange) -> None:
        if change.kind == "add":
            self._add(cart_id, change.line, change.quantity)
        elif change.kind == "update":
            self.session.exec(
                update(CartItem)
                .where(CartItem.cart_id == cart_id, CartItem.product_id == change.product_id)
                .values(quantity=change.quantity, updated_at=utc_now())
            )
        elif change.kind == "remove":
            self.session.exec(
                delete(CartItem).where(CartItem.cart_id == cart_id, CartItem.product_id == change.product_id)
            )
        elif change.kind == "clear":
            self.session.exec(delete(CartItem).where(CartItem.cart_id == cart_id))
        else:
            raise ValueError(f"Unknown cart change: {change.kind}")
        self.session.commit()

    def _increment(self, cart_id: str, product_id: str, quantity: int) -> bool:
        result = self.session.exec(
            update(CartItem)
            .where(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
            .values(quantity=CartItem.quantity + quantity, updated_at=utc_now())
        )
        return result.rowcount > 0

    def _add(self, cart_id: str, line: CartLine, quantity: int) -> None:
        if self._increment(cart_id, line.product_id, quantity):
            return

        last_position = self.session.exec(
            select(func.max(CartItem.position)).where(CartItem.cart_id == cart_id)
        ).one()
        now = utc_now()
        self.session.add(CartItem(
            cart_id=cart_id,
            product_id=line.product_id,
            name=line.name,
            price=line.price,
            image=line.image,
            quantity=quantity,
            position=0 if last_position is None else last_position + 1,
            created_at=now,
            updated_at=now,
        ))
        try:
            self.session.commit()
        except IntegrityError:
            # Another request stored the same product first
            self.session.rollback()
            self._increment(cart_id, line.product_id, quantity)


def open_cart(repository: CartRepository, cart_id: str) -> CartStore:
    """Restore a cart from storage and persist it after every change"""
    store = CartStore(cart_id, repository.load(cart_id))

    def persist(change: CartChange) -> None:
        repository.apply(cart_id, change)
        store.reset(repository.load(cart_id))

    store.subscribe(persist)
    return store
