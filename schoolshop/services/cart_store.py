# schoolshop/services/cart_store.py
import json
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict

from schoolshop.domain.errors import CartConflictError, CartPersistenceError, StockExceededError
from schoolshop.services.storage import KeyValueStorage, StorageError
from schoolshop.utils.logging import get_logger

logger = get_logger(__name__)

CART_WRITE_ATTEMPTS = 3


@dataclass
class LineItem:
    product_id: int
    quantity: int
    price: Decimal  # cena z chwili dodania, nie jest odswiezana

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


CartListener = Callable[[Dict[int, LineItem]], None]
# zmienia pozycje w miejscu, zwraca False gdy nie ma nic do zapisania
CartChange = Callable[[Dict[int, LineItem]], bool]


def cart_key(session_id: str) -> str:
    return f"cart_{session_id}"


class CartStore:
    """
    Koszyk jednej sesji: product_id -> LineItem.

    Niezmienniki:
    -nigdy nie ma pozycji z quantity <= 0 (zejscie do zera usuwa pozycje)
    -quantity jest przycinane do stanu magazynu podanego w danym wywolaniu

    Kazda zmiana zapisuje caly koszyk do magazynu i powiadamia subskrybentow.
    Zapis jest warunkowy (compare-and-set na odczytanej wartosci): jesli inne
    zadanie tej sesji zmienilo koszyk w miedzyczasie, koszyk jest wczytywany
    ponownie i zmiana nakladana jeszcze raz. Jesli zapis sie nie uda, zmiana
    w pamieci zostaje, a operacja rzuca CartPersistenceError.
    """

    def __init__(self, storage: KeyValueStorage, session_id: str):
        self.storage = storage
        self.session_id = session_id
        self._listeners: list[CartListener] = []
        self._raw: str | None = None
        self._items: Dict[int, LineItem] = self._load()

    # ------------------------------------------------------------------
    # trwalosc
    # ------------------------------------------------------------------
    def _load(self) -> Dict[int, LineItem]:
        try:
            raw = self.storage.get(cart_key(self.session_id))
        except StorageError as e:
            logger.error(f"Cannot read cart for session {self.session_id}: {e}")
            raise CartPersistenceError(f"Cart storage unavailable: {e}") from e

        self._raw = raw
        if not raw:
            return {}

        try:
            data = json.loads(raw)
            items = {}
            for key, entry in data.items():
                item = LineItem(
                    product_id=int(entry.get("product_id", key)),
                    quantity=int(entry["quantity"]),
                    price=Decimal(str(entry["price"])),
                )
                if item.quantity > 0:
                    items[item.product_id] = item
            return items
        except (ValueError, TypeError, KeyError, AttributeError, InvalidOperation) as e:
            logger.warning(f"Corrupted cart for session {self.session_id}, starting empty: {e}")
            return {}

    def _dump(self) -> str:
        return json.dumps(
            {
                str(pid): {
                    "product_id": item.product_id,
                    "quantity": item.quantity,
                    "price": str(item.price),
                }
                for pid, item in self._items.items()
            }
        )

    def _mutate(self, change: CartChange) -> None:
        for attempt in range(1, CART_WRITE_ATTEMPTS + 1):
            if not change(self._items):
                return

            payload = self._dump()
            try:
                saved = self.storage.compare_and_set(cart_key(self.session_id), self._raw, payload)
            except StorageError as e:
                logger.error(f"Failed to persist cart for session {self.session_id}: {e}")
                self._notify()
                raise CartPersistenceError(f"Cart saved in memory only: {e}") from e

            if saved:
                self._raw = payload
                self._notify()
                return

            logger.warning(
                f"Cart {self.session_id} changed concurrently, reloading (attempt {attempt})"
            )
            self._items = self._load()

        self._notify()
        raise CartConflictError(self.session_id)

    # ------------------------------------------------------------------
    # subskrypcje (np. licznik w naglowku)
    # ------------------------------------------------------------------
    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.get_cart_items()
        for listener in list(self._listeners):
            listener(snapshot)

    # ------------------------------------------------------------------
    # commands
    # ------------------------------------------------------------------
    def add_to_cart(self, product) -> None:
        """Dodaje 1 szt. produktu (obiekt z id, price, stock)."""
        product_id = int(product.id)
        stock = int(product.stock)
        price = Decimal(str(product.price))

        def change(items: Dict[int, LineItem]) -> bool:
            item = items.get(product_id)
            if item:
                if item.quantity >= stock:
                    raise StockExceededError(product_id, stock)
                item.quantity += 1
            else:
                if stock < 1:
                    raise StockExceededError(product_id, stock)
                items[product_id] = LineItem(product_id=product_id, quantity=1, price=price)
            return True

        self._mutate(change)
        logger.info(f"Cart {self.session_id}: product {product_id} qty {self.get_cart_quantity(product_id)}")

    def update_quantity(self, product_id, quantity: int, max_stock: int) -> None:
        product_id = int(product_id)
        if quantity > max_stock:
            quantity = max_stock

        def change(items: Dict[int, LineItem]) -> bool:
            # nieznany produkt - nic nie tworzymy
            if product_id not in items:
                return False
            if quantity <= 0:
                del items[product_id]
            else:
                items[product_id].quantity = quantity
            return True

        self._mutate(change)

    def increment_quantity(self, product_id, max_stock: int) -> None:
        product_id = int(product_id)

        def change(items: Dict[int, LineItem]) -> bool:
            item = items.get(product_id)
            if item is None:
                return False
            if item.quantity >= max_stock:
                raise StockExceededError(product_id, max_stock)
            item.quantity += 1
            return True

        self._mutate(change)

    def decrement_quantity(self, product_id) -> None:
        product_id = int(product_id)

        def change(items: Dict[int, LineItem]) -> bool:
            item = items.get(product_id)
            if item is None:
                return False
            if item.quantity > 1:
                item.quantity -= 1
            else:
                del items[product_id]
            return True

        self._mutate(change)

    def remove_from_cart(self, product_id) -> None:
        product_id = int(product_id)
        self._mutate(lambda items: items.pop(product_id, None) is not None)

    def clear_cart(self) -> None:
        def change(items: Dict[int, LineItem]) -> bool:
            items.clear()
            return True

        self._mutate(change)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def get_cart_quantity(self, product_id) -> int:
        item = self._items.get(int(product_id))
        return item.quantity if item else 0

    def get_total_quantity(self) -> int:
        return sum(item.quantity for item in self._items.values())

    def get_total_amount(self) -> Decimal:
        return sum((item.subtotal for item in self._items.values()), Decimal("0.00"))

    def get_cart_items(self) -> Dict[int, LineItem]:
        return {pid: replace(item) for pid, item in self._items.items()}

    def is_empty(self) -> bool:
        return not self._items
