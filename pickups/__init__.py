from .models import Address, PickupRequest, PickupStatus

__all__ = ["Address", "PickupRequest", "PickupStatus"]
