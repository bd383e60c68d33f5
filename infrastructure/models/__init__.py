"""Infrastructure models package exports."""
from .base import Base, metadata
from .payment import EnrollmentPaymentModel

__all__ = [
    "Base",
    "metadata",
    "EnrollmentPaymentModel",
]
