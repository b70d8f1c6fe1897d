"""Cart management — commands and handler."""

from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from checkout.cart.cart import ShoppingCart
from checkout.coupon.validation import validate_coupon
from checkout.domain import checkout


@checkout.command(part_of="ShoppingCart")
class CreateCart:
    """Open a cart for a signed-in customer or an anonymous session."""

    customer_id = Identifier()
    session_id = String(max_length=255)


@checkout.command(part_of="ShoppingCart")
class AddToCart:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(max_length=50)
    image = String(max_length=1000)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    stock = Integer(min_value=0)


@checkout.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    new_quantity = Integer(required=True, min_value=1)


@checkout.command(part_of="ShoppingCart")
class RemoveFromCart:
    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)


@checkout.command(part_of="ShoppingCart")
class ClearCart:
    cart_id = Identifier(required=True)


@checkout.command(part_of="ShoppingCart")
class ApplyCouponToCart:
    cart_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=50)


@checkout.command(part_of="ShoppingCart")
class RemoveCouponFromCart:
    cart_id = Identifier(required=True)


@checkout.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        cart = ShoppingCart.create(
            customer_id=command.customer_id,
            session_id=command.session_id,
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(AddToCart)
    def add_to_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        line = cart.add_line(
            product_id=command.product_id,
            name=command.name,
            unit_price=command.unit_price,
            quantity=command.quantity,
            sku=command.sku,
            image=command.image,
            stock=command.stock,
        )
        repo.add(cart)
        return str(line.id)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.update_quantity(line_id=command.line_id, new_quantity=command.new_quantity)
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.remove_line(line_id=command.line_id)
        repo.add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.clear()
        repo.add(cart)

    @handle(ApplyCouponToCart)
    def apply_coupon(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        quote = validate_coupon(command.coupon_code, cart.subtotal, customer_id=cart.customer_id)
        cart.apply_coupon(quote.normalized_code)
        repo.add(cart)
        return quote.discount_amount

    @handle(RemoveCouponFromCart)
    def remove_coupon(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.remove_coupon()
        repo.add(cart)
