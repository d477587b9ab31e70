"""
Page routes. The storefront UI is served elsewhere; these endpoints exist so
the routing guard has concrete pages to protect and redirect between.
"""

from __future__ import annotations

import html

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter(include_in_schema=False)


def _page(title: str) -> HTMLResponse:
    title = html.escape(title)
    return HTMLResponse(
        f"<!doctype html><html><head><title>{title}</title></head>"
        f"<body><h1>{title}</h1></body></html>"
    )


@router.get("/")
def home():
    return _page("Home")


@router.get("/Login")
def login_page():
    return _page("Login")


@router.get("/Register")
def register_page():
    return _page("Register")


@router.get("/Admin")
def admin_dashboard():
    return _page("Admin Dashboard")


@router.get("/Admin/{section:path}")
def admin_section(section: str):
    return _page(f"Admin {section}")


@router.get("/Detail/{product_id}")
def product_detail(product_id: str):
    return _page(f"Product {product_id}")


@router.get("/Review")
def review_page():
    return _page("Reviews")


@router.get("/Profile")
def profile_page():
    return _page("Profile")


@router.get("/view-order")
def view_order_page():
    return _page("Orders")


@router.get("/cart")
def cart_page():
    return _page("Cart")


@router.get("/checkout")
def checkout_page():
    return _page("Checkout")


@router.get("/checkout/success")
def checkout_success_page():
    return _page("Order Placed")
