"""AddressBook aggregate — a customer's saved shipping addresses.

The book is one consistency boundary, so switching the default address is a
single write: the old default is unset and the new one set together.
"""

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, HasMany, Identifier, String
from protean.utils.globals import current_domain

from checkout.address.events import (
    AddressAdded,
    AddressRemoved,
    AddressUpdated,
    DefaultAddressChanged,
)
from checkout.domain import checkout

MAX_ADDRESSES = 10

ADDRESS_FIELDS = (
    "first_name",
    "last_name",
    "address_line_1",
    "address_line_2",
    "city",
    "state",
    "postal_code",
    "phone",
)


@checkout.entity(part_of="AddressBook")
class Address:
    first_name: String(required=True, max_length=100)
    last_name: String(required=True, max_length=100)
    address_line_1: String(required=True, max_length=255)
    address_line_2: String(max_length=255)
    city: String(required=True, max_length=100)
    state: String(required=True, max_length=100)
    postal_code: String(required=True, max_length=20)
    phone: String(required=True, max_length=20)
    is_default: Boolean(default=False)

    def snapshot(self) -> dict:
        """Shipping-address fields as copied onto an order."""
        return {name: getattr(self, name) for name in ADDRESS_FIELDS}


@checkout.aggregate
class AddressBook:
    customer_id: Identifier(required=True, unique=True)
    addresses: HasMany(Address)

    @invariant.post
    def addresses_cannot_exceed_maximum(self):
        if len(self.addresses) > MAX_ADDRESSES:
            raise ValidationError({"addresses": [f"Cannot have more than {MAX_ADDRESSES} addresses"]})

    @invariant.post
    def exactly_one_default_address_when_addresses_exist(self):
        if not self.addresses:
            return
        defaults = [a for a in self.addresses if a.is_default]
        if len(defaults) != 1:
            raise ValidationError({"addresses": ["Exactly one address must be marked as default"]})

    def _find(self, address_id):
        address = next((a for a in self.addresses if str(a.id) == str(address_id)), None)
        if address is None:
            raise ValidationError({"address_id": [f"Address {address_id} not found"]})
        return address

    @property
    def default_address(self):
        return next((a for a in self.addresses if a.is_default), None)

    def add_address(self, is_default=False, **fields):
        # First address is always default
        if not self.addresses:
            is_default = True

        with atomic_change(self):
            if is_default:
                for addr in self.addresses:
                    if addr.is_default:
                        addr.is_default = False

            address = Address(is_default=is_default, **fields)
            self.add_addresses(address)

        self.raise_(
            AddressAdded(
                customer_id=str(self.customer_id),
                address_id=str(address.id),
                city=address.city,
                postal_code=address.postal_code,
                is_default=str(is_default),
            )
        )
        return address

    def update_address(self, address_id, **changes):
        address = self._find(address_id)
        for field_name, value in changes.items():
            setattr(address, field_name, value)

        self.raise_(AddressUpdated(customer_id=str(self.customer_id), address_id=str(address_id)))

    def remove_address(self, address_id):
        address = self._find(address_id)
        was_default = address.is_default

        with atomic_change(self):
            self.remove_addresses(address)

            # Promote the first remaining address
            if was_default and self.addresses:
                self.addresses[0].is_default = True

        self.raise_(AddressRemoved(customer_id=str(self.customer_id), address_id=str(address_id)))

    def set_default_address(self, address_id):
        address = self._find(address_id)
        previous_default = self.default_address
        previous_default_id = str(previous_default.id) if previous_default else None

        with atomic_change(self):
            for addr in self.addresses:
                if addr.is_default:
                    addr.is_default = False
            address.is_default = True

        self.raise_(
            DefaultAddressChanged(
                customer_id=str(self.customer_id),
                address_id=str(address_id),
                previous_default_address_id=previous_default_id,
            )
        )


def address_book_for(customer_id) -> AddressBook | None:
    results = current_domain.repository_for(AddressBook)._dao.query.filter(customer_id=str(customer_id)).all().items
    return results[0] if results else None
