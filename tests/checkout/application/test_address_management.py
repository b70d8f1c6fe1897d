"""Application tests for address book commands."""

import pytest
from checkout.address.address_book import address_book_for
from checkout.address.management import (
    AddAddress,
    RemoveAddress,
    SetDefaultAddress,
    UpdateAddress,
)
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain


def _add(shipping_address, customer_id="cust-001", **overrides):
    fields = dict(shipping_address, **overrides)
    return current_domain.process(AddAddress(customer_id=customer_id, **fields), asynchronous=False)


class TestAddressCommands:
    def test_first_address_creates_book(self, shipping_address):
        address_id = _add(shipping_address)

        book = address_book_for("cust-001")
        assert book is not None
        assert str(book.default_address.id) == address_id

    def test_update_address(self, shipping_address):
        address_id = _add(shipping_address)
        current_domain.process(
            UpdateAddress(customer_id="cust-001", address_id=address_id, city="Mysuru", postal_code="570001"),
            asynchronous=False,
        )

        address = address_book_for("cust-001").default_address
        assert address.city == "Mysuru"
        assert address.postal_code == "570001"
        assert address.first_name == "Asha"

    def test_set_default(self, shipping_address):
        _add(shipping_address)
        office_id = _add(shipping_address, address_line_1="Tower B, Outer Ring Road")
        current_domain.process(SetDefaultAddress(customer_id="cust-001", address_id=office_id), asynchronous=False)

        assert str(address_book_for("cust-001").default_address.id) == office_id

    def test_remove_address(self, shipping_address):
        home_id = _add(shipping_address)
        office_id = _add(shipping_address, address_line_1="Tower B, Outer Ring Road")
        current_domain.process(RemoveAddress(customer_id="cust-001", address_id=home_id), asynchronous=False)

        book = address_book_for("cust-001")
        assert len(book.addresses) == 1
        assert str(book.default_address.id) == office_id

    def test_unknown_address_rejected(self, shipping_address):
        _add(shipping_address)
        with pytest.raises(ValidationError):
            current_domain.process(
                RemoveAddress(customer_id="cust-001", address_id="addr-missing"),
                asynchronous=False,
            )

    def test_customer_without_book(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(
                UpdateAddress(customer_id="cust-404", address_id="addr-1", city="Pune"),
                asynchronous=False,
            )

    def test_books_are_per_customer(self, shipping_address):
        _add(shipping_address, customer_id="cust-001")
        _add(shipping_address, customer_id="cust-002")
        assert len(address_book_for("cust-001").addresses) == 1
        assert address_book_for("cust-003") is None
