class BookingError(ValueError):
    """Base class for pricing and availability input errors."""
