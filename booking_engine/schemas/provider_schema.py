"""Provider profile models and the booking policies copied from them."""

from typing import Optional

from pydantic import BaseModel, Field


class BookingRequirements(BaseModel):
    """Conditions a provider attaches to every booking."""
    deposit_required: bool = False
    identification_required: bool = False
    screening_required: bool = False


class DepositPolicy(BaseModel):
    """Deposit policy. The fact of payment lives on the booking, not here."""
    required: bool = False
    amount: int = 0


class ServiceLine(BaseModel):
    """A bookable service. Bookings keep their own copy of these values."""
    service_id: str
    name: str
    duration_minutes: int = 60
    price: int = 0
    description: Optional[str] = None


class ProviderProfile(BaseModel):
    """Provider data the scheduler needs at booking time."""
    provider_id: str
    display_name: str
    hourly_rate: int
    currency: str = "EUR"
    requirements: BookingRequirements = Field(default_factory=BookingRequirements)
    deposit_policy: DepositPolicy = Field(default_factory=DepositPolicy)
    services: list[ServiceLine] = Field(default_factory=list)

    def find_service(self, service_id: str) -> Optional[ServiceLine]:
        for service in self.services:
            if service.service_id == service_id:
                return service
        return None
