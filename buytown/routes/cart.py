from fastapi import APIRouter, Depends

from buytown.dependencies.services import get_cart_service, get_settings
from buytown.models.user import User
from buytown.schemas.cart_schemas import CartAddRequest, CartUpdateRequest
from buytown.services.cart_service import CartService
from buytown.services.tax_service import TaxService
from buytown.utils.token import get_current_user

router = APIRouter()


def _item_dict(item):
    return {
        "item_id": item.id,
        "product_id": item.product_id,
        "variation_id": item.variation_id,
        "quantity": item.quantity,
        "price": item.price,
        "total_price": item.total_price,
    }


@router.get("/")
def get_cart(
    cart: CartService = Depends(get_cart_service),
    current_user: User = Depends(get_current_user),
    settings=Depends(get_settings),
):
    items = cart.get_items(current_user.id)
    tax_rate = TaxService(cart.session, settings.default_tax_rate).active_rate()
    existing = cart.get_cart(current_user.id)

    return {
        "statusCode": 200,
        "status": existing.status if existing else "empty",
        "items": [_item_dict(i) for i in items],
        "summary": cart.get_summary(current_user.id, tax_rate),
    }


@router.post("/add", status_code=201)
def add_to_cart(
    data: CartAddRequest,
    cart: CartService = Depends(get_cart_service),
    current_user: User = Depends(get_current_user),
):
    item = cart.add_item(current_user.id, data.product_id, data.quantity, data.variation_id)
    return {"statusCode": 201, "message": "Added to cart", "item": _item_dict(item)}


@router.put("/update/{item_id}")
def update_cart_item(
    item_id: int,
    data: CartUpdateRequest,
    cart: CartService = Depends(get_cart_service),
    current_user: User = Depends(get_current_user),
):
    item = cart.update_item(current_user.id, item_id, data.quantity)
    return {"statusCode": 200, "message": "Cart updated", "item": _item_dict(item)}


@router.delete("/remove/{item_id}")
def remove_cart_item(
    item_id: int,
    cart: CartService = Depends(get_cart_service),
    current_user: User = Depends(get_current_user),
):
    cart.remove_item(current_user.id, item_id)
    return {"statusCode": 200, "message": "Item removed"}


@router.delete("/clear")
def clear_cart(
    cart: CartService = Depends(get_cart_service),
    current_user: User = Depends(get_current_user),
):
    cart.clear(current_user.id)
    return {"statusCode": 200, "message": "Cart cleared"}
