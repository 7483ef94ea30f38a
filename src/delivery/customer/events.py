"""Domain events for the Customer aggregate."""

from protean.fields import Identifier, String, Text

from delivery.domain import delivery


@delivery.event(part_of="Customer")
class DeviceTokenRegistered:
    __version__ = 1

    customer_id = Identifier(required=True)
    token = String(required=True, max_length=500)


@delivery.event(part_of="Customer")
class DeviceTokensPruned:
    """Tokens reported permanently invalid by the push transport were removed."""

    __version__ = 1

    customer_id = Identifier(required=True)
    tokens = Text(required=True)  # JSON array
