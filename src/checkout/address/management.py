"""Address book management — commands and handler."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from checkout.address.address_book import ADDRESS_FIELDS, AddressBook, address_book_for
from checkout.domain import checkout


@checkout.command(part_of="AddressBook")
class AddAddress:
    """Save a shipping address, creating the customer's book on first use."""

    customer_id: Identifier(required=True)
    first_name: String(required=True, max_length=100)
    last_name: String(required=True, max_length=100)
    address_line_1: String(required=True, max_length=255)
    address_line_2: String(max_length=255)
    city: String(required=True, max_length=100)
    state: String(required=True, max_length=100)
    postal_code: String(required=True, max_length=20)
    phone: String(required=True, max_length=20)
    is_default: Boolean(default=False)


@checkout.command(part_of="AddressBook")
class UpdateAddress:
    customer_id: Identifier(required=True)
    address_id: Identifier(required=True)
    first_name: String(max_length=100)
    last_name: String(max_length=100)
    address_line_1: String(max_length=255)
    address_line_2: String(max_length=255)
    city: String(max_length=100)
    state: String(max_length=100)
    postal_code: String(max_length=20)
    phone: String(max_length=20)


@checkout.command(part_of="AddressBook")
class RemoveAddress:
    customer_id: Identifier(required=True)
    address_id: Identifier(required=True)


@checkout.command(part_of="AddressBook")
class SetDefaultAddress:
    """Make an existing address the customer's default."""

    customer_id: Identifier(required=True)
    address_id: Identifier(required=True)


def _load_book(customer_id) -> AddressBook:
    book = address_book_for(customer_id)
    if book is None:
        raise ObjectNotFoundError(f"No saved addresses for customer {customer_id}")
    return book


@checkout.command_handler(part_of=AddressBook)
class ManageAddressesHandler:
    @handle(AddAddress)
    def add_address(self, command):
        repo = current_domain.repository_for(AddressBook)
        book = address_book_for(command.customer_id) or AddressBook(customer_id=command.customer_id)

        fields = {name: getattr(command, name) for name in ADDRESS_FIELDS}
        address = book.add_address(is_default=bool(command.is_default), **fields)
        repo.add(book)
        return str(address.id)

    @handle(UpdateAddress)
    def update_address(self, command):
        repo = current_domain.repository_for(AddressBook)
        book = _load_book(command.customer_id)

        changes = {}
        for name in ADDRESS_FIELDS:
            value = getattr(command, name, None)
            if value is not None:
                changes[name] = value

        book.update_address(command.address_id, **changes)
        repo.add(book)

    @handle(RemoveAddress)
    def remove_address(self, command):
        repo = current_domain.repository_for(AddressBook)
        book = _load_book(command.customer_id)
        book.remove_address(command.address_id)
        repo.add(book)

    @handle(SetDefaultAddress)
    def set_default_address(self, command):
        repo = current_domain.repository_for(AddressBook)
        book = _load_book(command.customer_id)
        book.set_default_address(command.address_id)
        repo.add(book)
