"""
Enrollment payment repository port - data access contract for payment refs.
"""
from abc import ABC, abstractmethod
from typing import Optional, List

from .entity import EnrollmentPayment


class EnrollmentPaymentRepository(ABC):
    """Repository contract: what can be done, not how."""

    @abstractmethod
    async def create(self, payment: EnrollmentPayment) -> EnrollmentPayment:
        """Persist a newly issued payment ref"""
        pass

    @abstractmethod
    async def get_by_external_id(self, provider: str, external_id: str) -> Optional[EnrollmentPayment]:
        """Fetch by provider + external id (webhook/poll correlation key)"""
        pass

    @abstractmethod
    async def list_by_enrollment(self, enrollment_code: str) -> List[EnrollmentPayment]:
        """All charges issued for an enrollment, newest first"""
        pass

    @abstractmethod
    async def update(self, payment: EnrollmentPayment) -> EnrollmentPayment:
        """Persist status changes"""
        pass
