"""Customer aggregate — the user-store view the order pipeline needs.

Carries the contact email, the role used by the order state machine, saved
delivery addresses (exactly one of them default) and the push device tokens
notifications fan out to.
"""

import json
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, HasMany, String, Text

from delivery.customer.events import DeviceTokenRegistered, DeviceTokensPruned
from delivery.domain import delivery


class Role(Enum):
    CUSTOMER = "customer"
    DELIVERY_PARTNER = "delivery-partner"
    ADMIN = "admin"


@delivery.entity(part_of="Customer")
class Address:
    """A saved delivery location. Coordinates are optional until geocoded."""

    label = String(max_length=50, default="Home")
    address_details = String(required=True, max_length=500)
    floor = String(max_length=20)
    apartment = String(max_length=20)
    phone_number = String(max_length=30)
    latitude = Float(min_value=-90.0, max_value=90.0)
    longitude = Float(min_value=-180.0, max_value=180.0)
    is_default = Boolean(default=False)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@delivery.aggregate
class Customer:
    email = String(required=True, max_length=254)
    name = String(max_length=255)
    role = String(choices=Role, default=Role.CUSTOMER.value)
    addresses = HasMany(Address)
    device_tokens = Text()  # JSON array of push tokens

    @invariant.post
    def at_most_one_default_address(self):
        defaults = [a for a in self.addresses if a.is_default]
        if len(defaults) > 1:
            raise ValidationError({"addresses": ["Only one address can be the default"]})

    # -------------------------------------------------------------------
    # Addresses
    # -------------------------------------------------------------------
    def add_address(self, address_details, latitude=None, longitude=None, label="Home", is_default=False, **extra):
        """Save a delivery address. The first address is always the default."""
        if not self.addresses:
            is_default = True

        with atomic_change(self):
            if is_default:
                for existing in self.addresses:
                    existing.is_default = False

            address = Address(
                label=label,
                address_details=address_details,
                latitude=latitude,
                longitude=longitude,
                is_default=is_default,
                **extra,
            )
            self.add_addresses(address)
        return address

    def default_address(self):
        return next((a for a in self.addresses if a.is_default), None)

    # -------------------------------------------------------------------
    # Device tokens
    # -------------------------------------------------------------------
    @property
    def tokens(self) -> list[str]:
        return json.loads(self.device_tokens) if self.device_tokens else []

    def register_device_token(self, token):
        tokens = self.tokens
        if token in tokens:
            return

        tokens.append(token)
        self.device_tokens = json.dumps(tokens)
        self.raise_(DeviceTokenRegistered(customer_id=str(self.id), token=token))

    def prune_device_tokens(self, stale_tokens):
        """Drop tokens the push transport reported as permanently invalid."""
        stale = set(stale_tokens)
        remaining = [t for t in self.tokens if t not in stale]
        removed = [t for t in self.tokens if t in stale]
        if not removed:
            return

        self.device_tokens = json.dumps(remaining)
        self.raise_(
            DeviceTokensPruned(
                customer_id=str(self.id),
                tokens=json.dumps(removed),
            )
        )
