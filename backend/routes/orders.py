# backend/routes/orders.py
from fastapi import APIRouter, Depends

from storage import JsonStore, get_store
from schemas.order import OrdersPage
from schemas.user import TokenData
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/orders", tags=["Orders"])


# List the caller's orders, newest first; admins see every order
@router.get("", response_model=OrdersPage)
def list_my_orders(
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(get_current_user),
):
    with store.transaction() as tx:
        orders = tx.read("orders")
    if current_user.role != "admin":
        orders = [o for o in orders if o.user_id == current_user.id]
    orders.sort(key=lambda o: o.date, reverse=True)
    return {"items": orders, "total": len(orders)}
