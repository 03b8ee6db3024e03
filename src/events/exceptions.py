class InvalidStatusTransitionError(Exception):
    """Raised when an event status change is not allowed."""

    def __init__(self, current: str, target: str, allowed: list[str] | None = None) -> None:
        """Keep both ends of the rejected transition."""
        super().__init__(f"Cannot change event status from {current} to {target}.")
        self.current = current
        self.target = target
        self.allowed = allowed or []


class InsufficientInventoryError(Exception):
    """Raised when fewer seats are available than requested."""

    def __init__(self, available: int, requested: int) -> None:
        """Keep the numbers for the error response."""
        super().__init__(f"Only {available} tickets available, {requested} requested.")
        self.available = available
        self.requested = requested


class PromoCodeError(Exception):
    """Raised when a promo code cannot be applied."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        """404 for unknown codes, 400 for everything else."""
        super().__init__(message)
        self.message = message
        self.status_code = status_code
