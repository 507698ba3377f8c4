"""Exception types raised by the cart, registry and backend layers."""

from __future__ import annotations

from decimal import Decimal


class PosError(Exception):
    """Base class for every error the terminal reports to the cashier."""


class ApiError(PosError):
    """The ERP backend was unreachable or answered with a non-2xx status."""

    def __init__(self, status: int | None, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


class CatalogFetchError(PosError):
    """Products or other reference data could not be loaded."""


class StockFetchError(PosError):
    """Stock batches for a variant could not be resolved."""


class InsufficientStockError(PosError):
    """Requested quantity is above what the batch had available."""

    def __init__(self, batch_code: str, requested: Decimal, available: Decimal) -> None:
        super().__init__(f"Only {available} units available in batch {batch_code} (requested {requested})")
        self.batch_code = batch_code
        self.requested = requested
        self.available = available


class InvalidAmountError(PosError):
    """A quantity, discount or charge is outside its allowed range."""


class EmptyOrderError(PosError):
    """The action needs at least one line in the cart."""


class NoCurrentOrderError(PosError):
    """An edit was attempted while no order is selected."""


class UnknownOrderError(PosError):
    """The order id is not open in the registry."""


class CheckoutSubmissionError(PosError):
    """The invoice could not be created; the order was left untouched."""


class SettlementError(PosError):
    """A pending invoice payment could not be recorded."""


class PrinterUnavailableError(PosError):
    """Printer dependencies, font or device are missing."""
