"""Coupon administration — create, update, activate, deactivate and delete."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from checkout.coupon.coupon import Coupon
from checkout.coupon.validation import find_coupon
from checkout.domain import checkout

_RULE_FIELDS = (
    "name",
    "value",
    "minimum_amount",
    "maximum_discount",
    "usage_limit",
    "user_limit",
    "starts_at",
    "expires_at",
)


@checkout.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=50)
    name = String(max_length=255)
    coupon_type = String(required=True, max_length=20)
    value = Float(required=True)
    minimum_amount = Float()
    maximum_discount = Float()
    usage_limit = Integer()
    user_limit = Integer()
    starts_at = DateTime()
    expires_at = DateTime()
    is_active = Boolean(default=True)


@checkout.command(part_of="Coupon")
class UpdateCoupon:
    coupon_id = Identifier(required=True)
    name = String(max_length=255)
    value = Float()
    minimum_amount = Float()
    maximum_discount = Float()
    usage_limit = Integer()
    user_limit = Integer()
    starts_at = DateTime()
    expires_at = DateTime()


@checkout.command(part_of="Coupon")
class ActivateCoupon:
    coupon_id = Identifier(required=True)


@checkout.command(part_of="Coupon")
class DeactivateCoupon:
    coupon_id = Identifier(required=True)


@checkout.command(part_of="Coupon")
class DeleteCoupon:
    coupon_id = Identifier(required=True)


@checkout.command_handler(part_of=Coupon)
class CouponAdminHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        if find_coupon(command.code) is not None:
            raise ValidationError({"code": ["A coupon with this code already exists"]})

        coupon = Coupon.create(
            code=command.code,
            name=command.name,
            coupon_type=command.coupon_type,
            value=command.value,
            minimum_amount=command.minimum_amount,
            maximum_discount=command.maximum_discount,
            usage_limit=command.usage_limit,
            user_limit=command.user_limit,
            starts_at=command.starts_at,
            expires_at=command.expires_at,
            is_active=command.is_active if command.is_active is not None else True,
        )
        current_domain.repository_for(Coupon).add(coupon)
        return str(coupon.id)

    @handle(UpdateCoupon)
    def update_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)

        updates = {}
        for field_name in _RULE_FIELDS:
            value = getattr(command, field_name, None)
            if value is not None:
                updates[field_name] = value

        coupon.update_rules(**updates)
        repo.add(coupon)

    @handle(ActivateCoupon)
    def activate_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        coupon.activate()
        repo.add(coupon)

    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        coupon.deactivate()
        repo.add(coupon)

    @handle(DeleteCoupon)
    def delete_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        repo._dao.delete(coupon)
