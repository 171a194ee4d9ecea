# schoolshop/domain/errors.py
"""Bledy domenowe sklepu.

Serwisy rzucaja te wyjatki, routery tlumacza je na odpowiedzi HTTP.
Surowe wyjatki sqlalchemy/redis/requests sa opakowywane na granicy repo/klienta.
"""


class ShopError(Exception):
    """Bazowy blad domenowy."""


# --- walidacja: odzyskiwalne lokalnie, stan nie jest zmieniany ---

class ValidationError(ShopError):
    pass


class StockExceededError(ValidationError):
    def __init__(self, product_id, stock: int):
        self.product_id = product_id
        self.stock = stock
        super().__init__(f"Stock exceeded for product {product_id} (available: {stock})")


class InsufficientStockError(ValidationError):
    def __init__(self, product_id, available: int, requested: int, name: str | None = None):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        self.name = name
        label = name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}: requested {requested}, available {available}"
        )


class CartEmptyError(ValidationError):
    def __init__(self):
        super().__init__("Cart is empty")


class TotalMismatchError(ValidationError):
    def __init__(self, submitted, computed):
        self.submitted = submitted
        self.computed = computed
        super().__init__(f"Order total {submitted} does not match items total {computed}")


class PriceMismatchError(ValidationError):
    def __init__(self, product_id, submitted, current):
        self.product_id = product_id
        self.submitted = submitted
        self.current = current
        super().__init__(
            f"Price of product {product_id} changed from {submitted} to {current}, "
            "remove it from the cart and add it again"
        )


# --- brak rekordu ---

class NotFoundError(ShopError):
    pass


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class OrderNotFoundError(NotFoundError):
    def __init__(self, ref):
        self.ref = ref
        super().__init__(f"Order {ref} not found")


# --- kolaborator niedostepny lub odrzucil zapis ---

class PersistenceError(ShopError):
    pass


class CartPersistenceError(PersistenceError):
    """Zapis koszyka sie nie udal; stan w pamieci zostal jednak zmieniony."""


class OrderPersistenceError(PersistenceError):
    pass


class CartConflictError(ShopError):
    """Koszyk byl rownolegle zmieniany przez inne zadanie tej sesji."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__("Cart was changed by another request, please try again")


class FileStorageError(PersistenceError):
    pass


class RenderError(ShopError):
    pass


class InvalidTransitionError(ShopError):
    def __init__(self, order_number: str, current: str, target: str):
        self.order_number = order_number
        self.current = current
        self.target = target
        super().__init__(
            f"Order {order_number} cannot move from payment status '{current}' to '{target}'"
        )


# --- tozsamosc operatora ---

class AuthError(ShopError):
    pass


class InvalidCredentialsError(AuthError):
    def __init__(self):
        super().__init__("Invalid email or password")


class NotAdminError(AuthError):
    def __init__(self):
        super().__init__("Admin access required")
