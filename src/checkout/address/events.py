"""Domain events for the AddressBook aggregate."""

from protean.fields import Identifier, String

from checkout.domain import checkout


@checkout.event(part_of="AddressBook")
class AddressAdded:
    __version__ = 1

    customer_id: Identifier(required=True)
    address_id: Identifier(required=True)
    city: String(required=True)
    postal_code: String(required=True)
    is_default: String(required=True)


@checkout.event(part_of="AddressBook")
class AddressUpdated:
    __version__ = 1

    customer_id: Identifier(required=True)
    address_id: Identifier(required=True)


@checkout.event(part_of="AddressBook")
class AddressRemoved:
    __version__ = 1

    customer_id: Identifier(required=True)
    address_id: Identifier(required=True)


@checkout.event(part_of="AddressBook")
class DefaultAddressChanged:
    """The customer's default shipping address moved to another entry."""

    __version__ = 1

    customer_id: Identifier(required=True)
    address_id: Identifier(required=True)
    previous_default_address_id: Identifier()
