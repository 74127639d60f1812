# backend/routes/products.py
from typing import List, Optional
from fastapi import APIRouter, Depends, UploadFile, File
from fastapi.concurrency import run_in_threadpool

import logging
import shutil
import uuid
from pathlib import Path

from config import settings
from storage import JsonStore, get_store
from models.product import Product
from schemas.product import ProductCreate, ProductUpdate, ProductDeleteResponse, ImageUploadResponse
from schemas.user import TokenData
from utils.errors import ConflictError, NotFoundError, StorageError, UploadTooLargeError, ValidationFailed
from utils.realtime import hub, INVENTORY_UPDATED
from utils.tokenJWT import admin_required

router = APIRouter(prefix="/products", tags=["Products"])
logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}

# ---- HELPERS ----
def _find(products: List[Product], product_id: str) -> Product:
    product = next((p for p in products if p.id == product_id), None)
    if product is None:
        raise NotFoundError("Product not found")
    return product

def _tag_taken(products: List[Product], rfid_tag: str, exclude_id: Optional[str] = None) -> bool:
    return any(p.matches_tag(rfid_tag) and p.id != exclude_id for p in products)

def _next_id(products: List[Product]) -> str:
    numeric = [int(p.id) for p in products if p.id.isdigit()]
    return str(max(numeric, default=0) + 1)


# =========================
# PRODUCT LIST
# =========================
@router.get("", response_model=List[Product])
def list_products(store: JsonStore = Depends(get_store)):
    with store.transaction() as tx:
        return tx.read("products")


# Product by RFID tag; registered before /{product_id} so the path is not swallowed
@router.get("/rfid/{tag}", response_model=Product)
def get_product_by_tag(tag: str, store: JsonStore = Depends(get_store)):
    with store.transaction() as tx:
        product = next((p for p in tx.read("products") if p.matches_tag(tag)), None)
    if product is None:
        raise NotFoundError("Product not found")
    return product


@router.get("/{product_id}", response_model=Product)
def get_product(product_id: str, store: JsonStore = Depends(get_store)):
    with store.transaction() as tx:
        return _find(tx.read("products"), product_id)


# =========================
# CREATE
# =========================
@router.post("", response_model=Product, status_code=201)
def add_product(
    payload: ProductCreate,
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(admin_required),
):
    with store.transaction() as tx:
        products = tx.read("products")
        if _tag_taken(products, payload.rfid_tag):
            raise ConflictError("Product with this RFID tag already exists")

        new_product = Product(id=_next_id(products), **payload.model_dump())
        products.append(new_product)
        tx.write("products", products)

    logger.info(f"User {current_user.username} created product {new_product.id} ({new_product.name})")
    return new_product


# =========================
# UPDATE
# =========================
def _update_product(store: JsonStore, product_id: str, payload: ProductUpdate) -> List[Product]:
    with store.transaction() as tx:
        products = tx.read("products")
        product = _find(products, product_id)

        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if "rfid_tag" in changes and _tag_taken(products, changes["rfid_tag"], exclude_id=product.id):
            raise ConflictError("Another product with this RFID tag already exists")
        if "quantity" in changes:
            changes["quantity"] = max(0, changes["quantity"])

        for key, value in changes.items():
            setattr(product, key, value)
        tx.write("products", products)
    return products


@router.put("/{product_id}", response_model=Product)
async def update_product(
    product_id: str,
    payload: ProductUpdate,
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(admin_required),
):
    products = await run_in_threadpool(_update_product, store, product_id, payload)
    await hub.publish(INVENTORY_UPDATED, {"products": [p.to_json() for p in products]})
    logger.info(f"User {current_user.username} updated product {product_id}")
    return _find(products, product_id)


# =========================
# DELETE
# =========================
@router.delete("/{product_id}", response_model=ProductDeleteResponse)
def delete_product(
    product_id: str,
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(admin_required),
):
    with store.transaction() as tx:
        products = tx.read("products")
        product = _find(products, product_id)
        tx.write("products", [p for p in products if p.id != product_id])

    logger.info(f"User {current_user.username} deleted product {product_id}")
    return ProductDeleteResponse(message="Product deleted successfully", product=product)


# =========================
# IMAGE UPLOAD
# =========================
@router.post("/upload-image/{product_id}", response_model=ImageUploadResponse)
def upload_image(
    product_id: str,
    image: UploadFile = File(...),
    store: JsonStore = Depends(get_store),
    current_user: TokenData = Depends(admin_required),
):
    if image.content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationFailed("Invalid file type")

    # Size check before anything touches the product record
    image.file.seek(0, 2)
    size = image.file.tell()
    image.file.seek(0)
    if size > settings.MAX_UPLOAD_BYTES:
        raise UploadTooLargeError("File too large")

    upload_dir = Path(settings.UPLOAD_DIR)
    ext = Path(image.filename or "").suffix.lstrip(".").lower() or "jpg"
    unique_filename = f"{product_id}-{uuid.uuid4().hex}.{ext}"
    image_url = f"/images/{unique_filename}"

    with store.transaction() as tx:
        products = tx.read("products")
        product = _find(products, product_id)
        old_image = product.image

        try:
            upload_dir.mkdir(parents=True, exist_ok=True)
            with open(upload_dir / unique_filename, "wb") as buffer:
                shutil.copyfileobj(image.file, buffer)
        except OSError as e:
            logger.error(f"Saving image for product {product_id} failed: {e}")
            raise StorageError("File save error")
        finally:
            image.file.close()

        product.image = image_url
        tx.write("products", products)

    # Replace the previous upload, never anything outside the upload directory
    if old_image and old_image.startswith("/images/"):
        old_path = upload_dir / Path(old_image).name
        if old_path.exists():
            old_path.unlink()

    logger.info(f"User {current_user.username} uploaded image for product {product_id}")
    return ImageUploadResponse(message="Image uploaded successfully", image_url=image_url, product=product)
