# every model has to be imported here so it lands on Base.metadata

from kibbledrop.data.models.user import UserModel
from kibbledrop.data.models.product import ProductModel, WeightVariantModel
from kibbledrop.data.models.cart import CartModel
from kibbledrop.data.models.cart_item import CartItemModel
from kibbledrop.data.models.order import OrderModel, OrderItemModel
from kibbledrop.data.models.subscription import SubscriptionModel, SubscriptionItemModel
from kibbledrop.data.models.pet import PetProfileModel

__all__ = [
    "UserModel",
    "ProductModel",
    "WeightVariantModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "SubscriptionModel",
    "SubscriptionItemModel",
    "PetProfileModel",
]
