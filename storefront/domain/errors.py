# storefront/domain/errors.py
"""
Typowane bledy silnika magazynu i koszyka.

Checkout rozroznia bledy po typie (nie po stringu), wiec kazdy blad
niesie dane potrzebne UI: ktory produkt/rozmiar, ile brakuje, czy mozna
sprobowac ponownie.
"""


class StorefrontError(Exception):
    """Bazowy blad silnika."""


class ValidationError(StorefrontError):
    """Niepoprawne dane wejsciowe (pusty koszyk, ujemna ilosc, ujemny stan)."""


class CheckoutError(StorefrontError):
    """
    Blad, ktory przerywa skladanie zamowienia.
    transient=True -> UI moze zaproponowac "sprobuj ponownie".
    """

    transient = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def user_message(self) -> str:
        return self.message


class NotFoundError(CheckoutError):
    def __init__(self, product_id: str, size: str):
        super().__init__(f'Inventory not found for size "{size}" of product {product_id}.')
        self.product_id = product_id
        self.size = size

    @property
    def user_message(self) -> str:
        return f'Size "{self.size}" is unavailable.'


class InsufficientStockError(CheckoutError):
    def __init__(self, product_id: str, size: str, requested: int, available: int):
        super().__init__(
            f'Insufficient stock for size "{size}" of product {product_id}: '
            f"requested {requested}, available {available}."
        )
        self.product_id = product_id
        self.size = size
        self.requested = requested
        self.available = available

    @property
    def user_message(self) -> str:
        return f'Only {self.available} left in size "{self.size}" (requested {self.requested}).'


class TransactionConflictError(CheckoutError):
    transient = True

    def __init__(self, message: str = "Concurrent update conflict"):
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return "Too many people are buying right now, please try again."


class PersistenceUnavailableError(CheckoutError):
    transient = True

    def __init__(self, message: str = "Backing store is unreachable"):
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return "Cannot complete purchase right now."


class ReconciliationRequiredError(StorefrontError):
    """
    Stan magazynowy zostal zdjety, ale zamowienie nie powstalo.
    Nie wolno tego ponawiac (ryzyko podwojnego zamowienia), tylko zglosic
    do rekoncyliacji.
    """

    def __init__(self, user_id: str, lines: list, cause: BaseException | None = None):
        super().__init__(
            f"Stock decremented for user {user_id} but order record was not created"
            + (f": {cause}" if cause else "")
        )
        self.user_id = user_id
        self.lines = lines
        self.cause = cause
