"""
HTTP routes for the storefront API.
"""

from __future__ import annotations

import logging
import math
import re
import secrets
import time
from typing import Optional
from urllib.parse import urlparse

import requests
from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    Response,
    UploadFile,
)

from storefront.auth import (
    ApiUser,
    get_api_user,
    hash_password,
    require_admin,
    require_cookie_user,
    verify_password,
)
from storefront.config import get_settings
from storefront.cookies import CookiePolicy, ResponseCookieJar
from storefront.db import DbClient, OrderRecord, UserRecord
from storefront.dependencies import (
    get_cookie_policy,
    get_db_client,
    get_session_codec,
    get_storage_client,
)
from storefront.financial import financial_report
from storefront.reviews import (
    calculate_review_stats,
    default_avatar,
    product_review_stats,
    refresh_product_rating,
    review_analytics,
    review_to_response,
    to_iso,
)
from storefront.schemas import (
    AdminReviewUpdateRequest,
    ApiResponse,
    AuthRequest,
    OrderCancelRequest,
    OrderCreateRequest,
    OrderUpdateRequest,
    Pagination,
    ProductCreateRequest,
    ReviewCreateRequest,
    ReviewUpdateRequest,
    UploadUrlRequest,
    UserUpdateRequest,
)
from storefront.session import SessionCodec, SessionDecodeError
from storefront.storage import StorageClient

logger = logging.getLogger(__name__)

router = APIRouter()

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
MIN_PASSWORD_LENGTH = 8
MIN_COMMENT_LENGTH = 10
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif")
IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

ENVELOPE = {"response_model": ApiResponse, "response_model_exclude_none": True}


def _paginate(items: list, page: int, limit: int) -> tuple[list, Pagination]:
    start = (page - 1) * limit
    pagination = Pagination(
        page=page,
        limit=limit,
        total=len(items),
        totalPages=math.ceil(len(items) / limit),
    )
    return items[start : start + limit], pagination


def _parse_flag(value: Optional[str]) -> Optional[bool]:
    if value is None or value == "":
        return None
    return value == "true"


# ---------------------------------------------------------------------------
# Authentication and users
# ---------------------------------------------------------------------------


def _register(payload: AuthRequest, db: DbClient, response: Response) -> ApiResponse:
    if not payload.name or not payload.email or not payload.password:
        raise HTTPException(
            status_code=400, detail="Name, email and password are required"
        )
    if not EMAIL_PATTERN.fullmatch(payload.email.strip()):
        raise HTTPException(status_code=400, detail="Invalid email format")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400, detail="Password must be at least 8 characters"
        )
    if db.get_user_by_email(payload.email.strip()):
        raise HTTPException(status_code=409, detail="Email is already registered")

    user = db.create_user(
        name=payload.name.strip(),
        email=payload.email.strip(),
        password_hash=hash_password(payload.password),
        phone=payload.phone,
    )
    logger.info("Registered user %s", user.id)
    response.status_code = 201
    return ApiResponse(
        success=True,
        data={"user": user.as_public_dict()},
        message="Registration successful",
    )


@router.post("/user", **ENVELOPE)
def authenticate(
    payload: AuthRequest,
    request: Request,
    response: Response,
    db: DbClient = Depends(get_db_client),
    codec: SessionCodec = Depends(get_session_codec),
    policy: CookiePolicy = Depends(get_cookie_policy),
):
    """
    Log in (default) or register, depending on ``action``.

    A successful login also sets the auth cookies the page guard reads.
    """
    if payload.action == "register":
        return _register(payload, db, response)

    if not payload.email or not payload.password:
        raise HTTPException(
            status_code=400, detail="Email and password are required"
        )
    user = db.get_user_by_email(payload.email.strip())
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account is deactivated")

    record = user.as_public_dict()
    jar = ResponseCookieJar(request, response, secure=get_settings().cookie_secure)
    policy.write(jar, codec.encode(record), user.role, payload.remember_me)
    return ApiResponse(
        success=True,
        data={"user": record, "expiresIn": "30d" if payload.remember_me else "24h"},
        message="Login successful",
    )


@router.post("/user/logout", **ENVELOPE)
def logout(
    request: Request,
    response: Response,
    codec: SessionCodec = Depends(get_session_codec),
    policy: CookiePolicy = Depends(get_cookie_policy),
):
    role = None
    api_user = get_api_user(request)
    if api_user:
        role = api_user.role
    else:
        # The admin cookie is path-scoped and never reaches /api. The legacy
        # cookie carries the latest login, so it outranks the user cookie.
        lookup = [spec.name for spec in policy.legacy_cookies]
        lookup.append(policy.user_cookie.name)
        for name in lookup:
            token = request.cookies.get(name)
            if not token:
                continue
            try:
                role = codec.decode(token).get("role")
            except SessionDecodeError:
                logger.warning("Ignoring malformed %s cookie on logout", name)
                continue
            break
    policy.clear(ResponseCookieJar(request, response), role)
    return ApiResponse(success=True, message="Logged out")


@router.get("/user", **ENVELOPE)
def list_users(
    _admin: ApiUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    users = [user.as_public_dict() for user in db.list_users()]
    return ApiResponse(
        success=True, data=users, message="Users retrieved successfully"
    )


@router.put("/user", **ENVELOPE)
def update_user(
    payload: UserUpdateRequest,
    _admin: ApiUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    if not payload.id:
        raise HTTPException(status_code=400, detail="User ID is required")
    fields = {}
    if payload.name:
        fields["name"] = payload.name
    if payload.email:
        existing = db.get_user_by_email(payload.email.strip())
        if existing and existing.id != payload.id:
            raise HTTPException(status_code=409, detail="Email is already registered")
        fields["email"] = payload.email.strip()
    if payload.role:
        fields["role"] = payload.role
    if payload.isActive is not None:
        fields["is_active"] = payload.isActive
    user = db.update_user(payload.id, fields)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return ApiResponse(
        success=True, data=user.as_public_dict(), message="User updated successfully"
    )


@router.delete("/user", **ENVELOPE)
def delete_user(
    id: Optional[str] = Query(None),
    _admin: ApiUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    if not id:
        raise HTTPException(status_code=400, detail="User ID is required")
    user = db.delete_user(id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return ApiResponse(
        success=True, data=user.as_public_dict(), message="User deleted successfully"
    )


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


@router.get("/product", **ENVELOPE)
def get_products(
    id: Optional[int] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    if id is not None:
        product = db.get_product(id)
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
        return ApiResponse(success=True, data=product.as_dict())
    products = [product.as_dict() for product in db.list_products()]
    return ApiResponse(success=True, data=products)


@router.post("/product", status_code=201, **ENVELOPE)
def create_product(
    payload: ProductCreateRequest,
    _admin: ApiUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    if not payload.name or payload.price is None:
        raise HTTPException(status_code=400, detail="Name and price are required")
    product = db.create_product(
        name=payload.name.strip(),
        price=payload.price,
        stock=payload.stock,
        image_url=payload.imageUrl,
    )
    return ApiResponse(
        success=True, data=product.as_dict(), message="Product created successfully"
    )


# ---------------------------------------------------------------------------
# Financial report
# ---------------------------------------------------------------------------


@router.get("/financial", **ENVELOPE)
def get_financial_report(
    period: str = Query("month"),
    year: Optional[int] = Query(None, ge=2000, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    quarter: int = Query(1, ge=1, le=4),
    semester: int = Query(1, ge=1, le=2),
    _admin: ApiUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    report = financial_report(
        db.list_orders(),
        db.list_products(),
        period=period,
        year=year,
        month=month,
        quarter=quarter,
        semester=semester,
    )
    summary_period = report["summary"]["period"]
    if summary_period["type"] == "all":
        label = "all data"
    else:
        label = f"{summary_period['type']} {summary_period['year']}"
    logger.info("Financial report for %s: %d orders", label, report["summary"]["totalOrders"])
    return ApiResponse(
        success=True,
        data=report,
        message=f"Financial report generated successfully for {label}",
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


def _order_to_response(order: OrderRecord, user: Optional[UserRecord]) -> dict:
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "customerName": user.name if user else "Unknown",
        "customerEmail": user.email if user else "",
        "customerPhone": (user.phone if user else None) or "",
        "items": order.items,
        "totalAmount": order.total_amount,
        "status": order.status,
        "shippingAddress": {
            "street": order.shipping_address or "",
            "city": "",
            "postalCode": "",
            "province": "",
        },
        "paymentMethod": order.payment_method,
        "paymentStatus": order.payment_status,
        "orderDate": to_iso(order.created_at),
        "shippingDate": order.shipping_date,
        "deliveryDate": order.delivery_date,
        "notes": order.notes,
    }


@router.get("/orders", **ENVELOPE)
def list_orders(
    status: Optional[str] = Query(None),
    customerEmail: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: DbClient = Depends(get_db_client),
):
    rows = db.list_orders(status=status or None, customer_email=customerEmail or None)
    orders = [_order_to_response(order, user) for order, user in rows]
    page_items, pagination = _paginate(orders, page, limit)
    logger.info("Retrieved %d orders", len(orders))
    return ApiResponse(
        success=True,
        data=page_items,
        pagination=pagination,
        message="Orders retrieved successfully",
    )


@router.post("/orders", status_code=201, **ENVELOPE)
def create_order(
    payload: OrderCreateRequest,
    request: Request,
    db: DbClient = Depends(get_db_client),
):
    if (
        not payload.customerName
        or not payload.customerEmail
        or not payload.customerPhone
        or payload.items is None
        or payload.shippingAddress is None
    ):
        raise HTTPException(status_code=400, detail="Required fields are missing")
    if not payload.items:
        raise HTTPException(
            status_code=400, detail="Items array is required and cannot be empty"
        )

    total_amount = sum(item.price * item.quantity for item in payload.items)
    address = payload.shippingAddress
    order = db.create_order(
        user_id=request.headers.get("user-id"),
        total_amount=total_amount,
        items=[item.model_dump() for item in payload.items],
        shipping_address=f"{address.street}, {address.city}",
        payment_method=payload.paymentMethod or "cash_on_delivery",
        notes=payload.notes,
    )
    user = db.get_user(order.user_id) if order.user_id else None
    logger.info("Created order %s", order.order_number)
    return ApiResponse(
        success=True,
        data=_order_to_response(order, user),
        message="Order created successfully",
    )


@router.put("/orders", **ENVELOPE)
def update_order(
    payload: OrderUpdateRequest,
    db: DbClient = Depends(get_db_client),
):
    if not payload.id:
        raise HTTPException(status_code=400, detail="Order ID is required")

    fields = {}
    if payload.status:
        fields["status"] = payload.status
    if payload.paymentStatus:
        fields["payment_status"] = payload.paymentStatus
    if payload.shippingDate:
        fields["shipping_date"] = payload.shippingDate
    if payload.deliveryDate:
        fields["delivery_date"] = payload.deliveryDate
    if payload.notes is not None:
        fields["notes"] = payload.notes

    order = db.update_order(payload.id, fields)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    user = db.get_user(order.user_id) if order.user_id else None
    return ApiResponse(
        success=True,
        data=_order_to_response(order, user),
        message="Order updated successfully",
    )


@router.delete("/orders", **ENVELOPE)
def delete_order(
    id: Optional[int] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    if not id:
        raise HTTPException(status_code=400, detail="Order ID is required")
    order = db.delete_order(id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return ApiResponse(
        success=True,
        data=_order_to_response(order, None),
        message="Order deleted successfully",
    )


@router.post("/orders/cancel", **ENVELOPE)
def cancel_order(
    payload: OrderCancelRequest,
    request: Request,
    db: DbClient = Depends(get_db_client),
):
    """Let a customer cancel one of their own orders while it is still pending."""
    user_id = request.headers.get("user-id")
    if not user_id:
        raise HTTPException(status_code=401, detail="User ID is required")
    if not payload.orderId:
        raise HTTPException(status_code=400, detail="Order ID is required")

    order = db.get_order(payload.orderId)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.user_id != user_id:
        raise HTTPException(
            status_code=403,
            detail="Unauthorized: You can only cancel your own orders",
        )
    if order.status.lower() != "pending":
        raise HTTPException(
            status_code=400, detail="Only pending orders can be cancelled"
        )

    updated = db.update_order(order.id, {"status": "cancelled"})
    return ApiResponse(
        success=True,
        data=_order_to_response(updated, db.get_user(user_id)),
        message="Order cancelled successfully",
    )


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


def _validate_rating(rating: Optional[int]) -> None:
    if rating is not None and not 1 <= rating <= 5:
        raise HTTPException(status_code=400, detail="Rating must be between 1 and 5")


def _validate_comment(comment: Optional[str]) -> None:
    if comment is not None and len(comment.strip()) < MIN_COMMENT_LENGTH:
        raise HTTPException(
            status_code=400,
            detail="Comment must be at least 10 characters long",
        )


@router.get("/reviews", **ENVELOPE)
def list_reviews(
    productId: Optional[int] = Query(None),
    userId: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sortBy: str = Query("created_at"),
    sortOrder: str = Query("desc", pattern="^(asc|desc)$"),
    rating: Optional[int] = Query(None),
    verified: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    reviews = db.list_reviews(
        product_id=productId,
        user_id=userId or None,
        rating=rating,
        verified=_parse_flag(verified),
        sort_by=sortBy,
        descending=sortOrder != "asc",
    )
    page_items, pagination = _paginate(reviews, page, limit)
    return ApiResponse(
        success=True,
        data=[review_to_response(review) for review in page_items],
        stats=calculate_review_stats(reviews),
        pagination=pagination,
    )


@router.post("/reviews", status_code=201, **ENVELOPE)
def create_review(
    payload: ReviewCreateRequest,
    user: dict = Depends(require_cookie_user),
    db: DbClient = Depends(get_db_client),
):
    if not payload.productId or not payload.rating or not payload.comment:
        raise HTTPException(
            status_code=400,
            detail="Product ID, rating, and comment are required",
        )
    _validate_rating(payload.rating)
    _validate_comment(payload.comment)

    user_id = str(user["id"])
    if db.find_review(payload.productId, user_id):
        raise HTTPException(
            status_code=409, detail="You have already reviewed this product"
        )
    if not db.get_product(payload.productId):
        raise HTTPException(status_code=404, detail="Product not found")

    user_name = user.get("name") or user["email"]
    review = db.create_review(
        product_id=payload.productId,
        user_id=user_id,
        user_name=user_name,
        rating=payload.rating,
        comment=payload.comment.strip(),
        user_avatar=payload.userAvatar or default_avatar(user_name),
    )
    refresh_product_rating(db, payload.productId)
    return ApiResponse(
        success=True,
        data=review_to_response(review),
        message="Review added successfully",
    )


@router.put("/reviews", **ENVELOPE)
def update_review(
    payload: ReviewUpdateRequest,
    user: dict = Depends(require_cookie_user),
    db: DbClient = Depends(get_db_client),
):
    if not payload.id:
        raise HTTPException(status_code=400, detail="Review ID is required")

    existing = db.get_review(payload.id)
    if not existing or existing.user_id != str(user["id"]):
        raise HTTPException(
            status_code=404, detail="Review not found or access denied"
        )
    _validate_rating(payload.rating)
    _validate_comment(payload.comment)

    fields = {}
    if payload.rating:
        fields["rating"] = payload.rating
    if payload.comment:
        fields["comment"] = payload.comment.strip()
    review = db.update_review(payload.id, fields)

    if payload.rating and payload.rating != existing.rating:
        refresh_product_rating(db, existing.product_id)
    return ApiResponse(
        success=True,
        data=review_to_response(review),
        message="Review updated successfully",
    )


@router.delete("/reviews", **ENVELOPE)
def delete_review(
    id: Optional[int] = Query(None),
    user: dict = Depends(require_cookie_user),
    db: DbClient = Depends(get_db_client),
):
    if not id:
        raise HTTPException(status_code=400, detail="Review ID is required")
    existing = db.get_review(id)
    if not existing:
        raise HTTPException(status_code=404, detail="Review not found")
    if existing.user_id != str(user["id"]) and user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Access denied")

    db.delete_review(id)
    refresh_product_rating(db, existing.product_id)
    return ApiResponse(success=True, message="Review deleted successfully")


@router.get("/reviews/stats", **ENVELOPE)
def get_review_stats(
    productId: Optional[int] = Query(None),
    limit: int = Query(5, ge=1, le=50),
    db: DbClient = Depends(get_db_client),
):
    if not productId:
        raise HTTPException(status_code=400, detail="Product ID is required")
    product = db.get_product(productId)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    reviews = db.list_reviews(product_id=productId)
    return ApiResponse(
        success=True,
        data=product_review_stats(product.id, product.name, reviews, top_limit=limit),
    )


@router.get("/admin/reviews", **ENVELOPE)
def admin_list_reviews(
    action: str = Query("list"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sortBy: str = Query("created_at"),
    sortOrder: str = Query("desc", pattern="^(asc|desc)$"),
    verified: Optional[str] = Query(None),
    rating: Optional[int] = Query(None),
    productId: Optional[int] = Query(None),
    userId: Optional[str] = Query(None),
    _admin: ApiUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    if action == "analytics":
        reviews = db.list_reviews()
        names = {product.id: product.name for product in db.list_products()}
        return ApiResponse(success=True, data=review_analytics(reviews, names))

    reviews = db.list_reviews(
        product_id=productId,
        user_id=userId or None,
        rating=rating,
        verified=_parse_flag(verified),
        sort_by=sortBy,
        descending=sortOrder != "asc",
    )
    page_items, pagination = _paginate(reviews, page, limit)
    data = []
    for review in page_items:
        product = db.get_product(review.product_id)
        author = db.get_user(review.user_id)
        item = review_to_response(review)
        item["productName"] = product.name if product else "Unknown Product"
        item["userEmail"] = author.email if author else ""
        data.append(item)
    return ApiResponse(success=True, data=data, pagination=pagination)


@router.put("/admin/reviews", **ENVELOPE)
def admin_update_review(
    payload: AdminReviewUpdateRequest,
    _admin: ApiUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    if not payload.id:
        raise HTTPException(status_code=400, detail="Review ID is required")
    if payload.action not in ("verify", "update"):
        raise HTTPException(status_code=400, detail="Invalid action")
    if not db.get_review(payload.id):
        raise HTTPException(status_code=404, detail="Review not found")

    if payload.action == "verify":
        verified = bool(payload.verified)
        review = db.update_review(payload.id, {"verified": verified})
        state = "verified" if verified else "unverified"
        return ApiResponse(
            success=True,
            data=review_to_response(review),
            message=f"Review {state} successfully",
        )

    _validate_rating(payload.rating)
    fields = {}
    if payload.comment:
        fields["comment"] = payload.comment.strip()
    if payload.rating:
        fields["rating"] = payload.rating
    review = db.update_review(payload.id, fields)
    if payload.rating:
        refresh_product_rating(db, review.product_id)
    return ApiResponse(
        success=True,
        data=review_to_response(review),
        message="Review updated successfully",
    )


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


def _object_path(folder: str, extension: str) -> str:
    folder = folder.strip("/") or "products"
    name = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{extension}"
    return f"{folder}/{name}"


def _store_image(
    storage: StorageClient, data: bytes, content_type: str, path: str
) -> dict:
    try:
        storage.upload_bytes(path, data, content_type)
    except Exception:
        logger.exception("Upload to %s failed", path)
        raise HTTPException(status_code=500, detail="Failed to upload file")
    return {
        "url": storage.public_url(path),
        "path": path,
        "fileName": path.rsplit("/", 1)[-1],
    }


@router.post("/upload", **ENVELOPE)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    folder: str = Form("products"),
    storage: StorageClient = Depends(get_storage_client),
):
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=400,
            detail="File type not allowed. Please upload JPEG, PNG, WebP, or GIF files.",
        )
    data = await file.read()
    if len(data) > get_settings().max_upload_bytes:
        raise HTTPException(
            status_code=400, detail="File size too large. Maximum size is 10MB."
        )

    # The client filename is untrusted; the extension follows the checked type.
    path = _object_path(folder, IMAGE_EXTENSIONS[file.content_type])
    return ApiResponse(
        success=True,
        data=_store_image(storage, data, file.content_type, path),
        message="File uploaded successfully",
    )


@router.delete("/upload", **ENVELOPE)
def delete_file(
    path: Optional[str] = Query(None),
    storage: StorageClient = Depends(get_storage_client),
):
    if not path:
        raise HTTPException(status_code=400, detail="No file path provided")
    try:
        storage.delete(path)
    except Exception:
        logger.exception("Delete of %s failed", path)
        raise HTTPException(status_code=500, detail="Failed to delete file")
    return ApiResponse(success=True, message="File deleted successfully")


@router.post("/upload-url", **ENVELOPE)
def upload_from_url(
    payload: UploadUrlRequest,
    storage: StorageClient = Depends(get_storage_client),
):
    """Download an image from a public URL and store it like an upload."""
    if not payload.imageUrl:
        raise HTTPException(status_code=400, detail="No image URL provided")
    parsed = urlparse(payload.imageUrl)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise HTTPException(status_code=400, detail="Invalid URL format")

    settings = get_settings()
    logger.info("Downloading image from URL: %s", payload.imageUrl)
    try:
        response = requests.get(
            payload.imageUrl, timeout=settings.upload_fetch_timeout_seconds
        )
    except requests.RequestException:
        logger.exception("Download of %s failed", payload.imageUrl)
        raise HTTPException(
            status_code=500, detail="Failed to upload image from URL"
        )
    if not response.ok:
        raise HTTPException(
            status_code=400,
            detail=f"Failed to download image: {response.reason}",
        )

    content_type = (response.headers.get("content-type") or "").split(";")[0].strip()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid image type. Please provide JPEG, PNG, WebP, or GIF images.",
        )
    data = response.content
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=400, detail="File size too large. Maximum size is 10MB."
        )

    path = _object_path(payload.folder, IMAGE_EXTENSIONS[content_type])
    return ApiResponse(
        success=True,
        data=_store_image(storage, data, content_type, path),
        message="Image uploaded successfully",
    )
