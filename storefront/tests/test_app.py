import json
import unittest
from unittest.mock import MagicMock, patch

import requests
from fastapi.testclient import TestClient

from storefront.app import create_app
from storefront.auth import hash_password
from storefront.db import InMemoryDbClient
from storefront.dependencies import get_db_client, get_storage_client

ADMIN_HEADERS = {"user-id": "admin-1", "user-role": "admin", "user-email": "admin@shop.test"}


def cookie_value(record: dict) -> str:
    return json.dumps(record, separators=(",", ":"))


class StorefrontApiTestCase(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app())
        self.db = get_db_client()
        if isinstance(self.db, InMemoryDbClient):
            self.db.reset()

    def create_user(self, email="pat@shop.test", password="Secret123!", role="user"):
        return self.db.create_user(
            name="Pat",
            email=email,
            password_hash=hash_password(password),
            role=role,
            phone="0812345678",
        )

    def login_cookie(self, user):
        self.client.cookies.set("auth-token", cookie_value(user.as_public_dict()))


class AuthApiTests(StorefrontApiTestCase):
    def test_login_returns_user_and_sets_cookies(self):
        self.create_user()
        response = self.client.post(
            "/api/user", json={"email": "pat@shop.test", "password": "Secret123!"}
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["data"]["user"]["email"], "pat@shop.test")
        self.assertNotIn("password_hash", payload["data"]["user"])
        self.assertEqual(payload["data"]["expiresIn"], "24h")

        set_cookies = response.headers.get_list("set-cookie")
        joined = "\n".join(set_cookies)
        self.assertIn("user-auth-token=", joined)
        self.assertIn("auth-token=", joined)
        self.assertNotIn("admin-auth-token=", joined)
        self.assertIn("Max-Age=86400", joined)

    def test_login_remember_me_uses_long_max_age(self):
        self.create_user()
        response = self.client.post(
            "/api/user",
            json={"email": "pat@shop.test", "password": "Secret123!", "rememberMe": True},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["expiresIn"], "30d")
        self.assertIn("Max-Age=2592000", response.headers["set-cookie"])

    def test_admin_login_scopes_cookie_to_admin_area(self):
        self.create_user(email="boss@shop.test", role="admin")
        response = self.client.post(
            "/api/user", json={"email": "boss@shop.test", "password": "Secret123!"}
        )
        self.assertEqual(response.status_code, 200)
        admin_cookie = [
            c for c in response.headers.get_list("set-cookie")
            if c.startswith("admin-auth-token=")
        ]
        self.assertEqual(len(admin_cookie), 1)
        self.assertIn("Path=/Admin", admin_cookie[0])

    def test_login_rejects_bad_credentials(self):
        self.create_user()
        response = self.client.post(
            "/api/user", json={"email": "pat@shop.test", "password": "wrong-pass"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(
            response.json(), {"success": False, "message": "Invalid email or password"}
        )

        unknown = self.client.post(
            "/api/user", json={"email": "nobody@shop.test", "password": "Secret123!"}
        )
        self.assertEqual(unknown.status_code, 401)

    def test_login_requires_email_and_password(self):
        response = self.client.post("/api/user", json={"email": "pat@shop.test"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_login_rejects_deactivated_account(self):
        user = self.create_user()
        self.db.update_user(user.id, {"is_active": False})
        response = self.client.post(
            "/api/user", json={"email": "pat@shop.test", "password": "Secret123!"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Account is deactivated")

    def test_register_creates_user(self):
        response = self.client.post(
            "/api/user",
            json={
                "action": "register",
                "name": "New Customer",
                "email": "new@shop.test",
                "password": "Secret123!",
                "phone": "0812345678",
            },
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["data"]["user"]["role"], "user")
        self.assertIsNotNone(self.db.get_user_by_email("new@shop.test"))

    def test_register_validation_and_duplicates(self):
        short = self.client.post(
            "/api/user",
            json={
                "action": "register",
                "name": "Short",
                "email": "short@shop.test",
                "password": "abc",
            },
        )
        self.assertEqual(short.status_code, 400)

        self.create_user()
        duplicate = self.client.post(
            "/api/user",
            json={
                "action": "register",
                "name": "Pat Again",
                "email": "pat@shop.test",
                "password": "Secret123!",
            },
        )
        self.assertEqual(duplicate.status_code, 409)

    def test_logout_clears_role_and_legacy_cookies(self):
        response = self.client.post("/api/user/logout", headers=ADMIN_HEADERS)
        self.assertEqual(response.status_code, 200)
        cleared = "\n".join(response.headers.get_list("set-cookie"))
        self.assertIn("admin-auth-token=", cleared)
        self.assertIn("auth-token=", cleared)
        self.assertNotIn("user-auth-token=", cleared)

    def test_logout_uses_latest_login_when_other_tab_is_a_customer(self):
        self.client.cookies.set(
            "user-auth-token",
            cookie_value({"id": "u1", "email": "pat@shop.test", "role": "user"}),
        )
        self.client.cookies.set(
            "auth-token",
            cookie_value({"id": "a1", "email": "boss@shop.test", "role": "admin"}),
        )
        response = self.client.post("/api/user/logout")
        self.assertEqual(response.status_code, 200)
        cleared = [c.split("=", 1)[0] for c in response.headers.get_list("set-cookie")]
        self.assertEqual(sorted(cleared), ["admin-auth-token", "auth-token"])

    def test_logout_falls_back_to_user_cookie(self):
        self.client.cookies.set(
            "user-auth-token",
            cookie_value({"id": "u1", "email": "pat@shop.test", "role": "user"}),
        )
        response = self.client.post("/api/user/logout")
        cleared = [c.split("=", 1)[0] for c in response.headers.get_list("set-cookie")]
        self.assertEqual(sorted(cleared), ["auth-token", "user-auth-token"])

    def test_update_user_rejects_taken_email(self):
        self.create_user(email="lee@shop.test")
        user = self.create_user()
        response = self.client.put(
            "/api/user",
            json={"id": user.id, "email": "lee@shop.test"},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.db.get_user(user.id).email, "pat@shop.test")

        same = self.client.put(
            "/api/user",
            json={"id": user.id, "email": "pat@shop.test", "name": "Patricia"},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(same.status_code, 200)
        self.assertEqual(same.json()["data"]["name"], "Patricia")

    def test_user_admin_endpoints_require_admin(self):
        response = self.client.get("/api/user")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["message"], "Admin access required")

        customer = self.client.get(
            "/api/user",
            headers={"user-id": "1", "user-role": "user", "user-email": "c@shop.test"},
        )
        self.assertEqual(customer.status_code, 403)

    def test_admin_can_list_update_and_delete_users(self):
        user = self.create_user()
        listed = self.client.get("/api/user", headers=ADMIN_HEADERS)
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(len(listed.json()["data"]), 1)

        updated = self.client.put(
            "/api/user",
            json={"id": user.id, "isActive": False, "role": "admin"},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(updated.status_code, 200)
        self.assertFalse(updated.json()["data"]["isActive"])
        self.assertEqual(updated.json()["data"]["role"], "admin")

        deleted = self.client.delete(
            "/api/user", params={"id": user.id}, headers=ADMIN_HEADERS
        )
        self.assertEqual(deleted.status_code, 200)
        self.assertIsNone(self.db.get_user(user.id))

        missing = self.client.delete(
            "/api/user", params={"id": user.id}, headers=ADMIN_HEADERS
        )
        self.assertEqual(missing.status_code, 404)


class OrderApiTests(StorefrontApiTestCase):
    def order_payload(self, **overrides):
        payload = {
            "customerName": "Pat",
            "customerEmail": "pat@shop.test",
            "customerPhone": "0812345678",
            "items": [
                {"productId": 1, "productName": "Serum", "quantity": 2, "price": 50000},
                {"productId": 2, "productName": "Toner", "quantity": 1, "price": 25000},
            ],
            "shippingAddress": {
                "street": "Jl. Mawar 1",
                "city": "Bandung",
                "postalCode": "40111",
                "province": "Jawa Barat",
            },
            "paymentMethod": "bank_transfer",
        }
        payload.update(overrides)
        return payload

    def test_create_order_computes_total_and_owner(self):
        user = self.create_user()
        response = self.client.post(
            "/api/orders", json=self.order_payload(), headers={"user-id": user.id}
        )
        self.assertEqual(response.status_code, 201)
        data = response.json()["data"]
        self.assertEqual(data["totalAmount"], 125000)
        self.assertEqual(data["status"], "pending")
        self.assertEqual(data["customerEmail"], "pat@shop.test")
        self.assertEqual(data["shippingAddress"]["street"], "Jl. Mawar 1, Bandung")
        self.assertTrue(data["orderNumber"].startswith("ORD-"))
        self.assertEqual(len(data["items"]), 2)

    def test_create_order_validation(self):
        missing = self.client.post(
            "/api/orders", json=self.order_payload(customerName=None)
        )
        self.assertEqual(missing.status_code, 400)
        self.assertEqual(missing.json()["message"], "Required fields are missing")

        empty = self.client.post("/api/orders", json=self.order_payload(items=[]))
        self.assertEqual(empty.status_code, 400)

    def test_list_orders_paginates_and_filters(self):
        user = self.create_user()
        for _ in range(3):
            self.client.post(
                "/api/orders", json=self.order_payload(), headers={"user-id": user.id}
            )
        response = self.client.get("/api/orders", params={"page": 1, "limit": 2})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(len(payload["data"]), 2)
        self.assertEqual(
            payload["pagination"], {"page": 1, "limit": 2, "total": 3, "totalPages": 2}
        )

        filtered = self.client.get("/api/orders", params={"status": "shipped"})
        self.assertEqual(filtered.json()["data"], [])
        self.assertEqual(filtered.json()["pagination"]["totalPages"], 0)

        by_email = self.client.get(
            "/api/orders", params={"customerEmail": "pat@shop.test"}
        )
        self.assertEqual(by_email.json()["pagination"]["total"], 3)

    def test_update_and_delete_order(self):
        created = self.client.post("/api/orders", json=self.order_payload()).json()
        order_id = created["data"]["id"]

        updated = self.client.put(
            "/api/orders",
            json={"id": order_id, "status": "shipped", "paymentStatus": "paid"},
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["data"]["status"], "shipped")
        self.assertEqual(updated.json()["data"]["paymentStatus"], "paid")

        self.assertEqual(self.client.put("/api/orders", json={}).status_code, 400)
        self.assertEqual(
            self.client.put("/api/orders", json={"id": 999}).status_code, 404
        )

        deleted = self.client.delete("/api/orders", params={"id": order_id})
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(
            self.client.delete("/api/orders", params={"id": order_id}).status_code, 404
        )

    def test_cancel_order_rules(self):
        owner = self.create_user()
        order_id = self.client.post(
            "/api/orders", json=self.order_payload(), headers={"user-id": owner.id}
        ).json()["data"]["id"]

        anonymous = self.client.post("/api/orders/cancel", json={"orderId": order_id})
        self.assertEqual(anonymous.status_code, 401)

        stranger = self.client.post(
            "/api/orders/cancel", json={"orderId": order_id}, headers={"user-id": "x"}
        )
        self.assertEqual(stranger.status_code, 403)

        missing = self.client.post(
            "/api/orders/cancel", json={"orderId": 999}, headers={"user-id": owner.id}
        )
        self.assertEqual(missing.status_code, 404)

        cancelled = self.client.post(
            "/api/orders/cancel", json={"orderId": order_id}, headers={"user-id": owner.id}
        )
        self.assertEqual(cancelled.status_code, 200)
        self.assertEqual(cancelled.json()["data"]["status"], "cancelled")

        again = self.client.post(
            "/api/orders/cancel", json={"orderId": order_id}, headers={"user-id": owner.id}
        )
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.json()["message"], "Only pending orders can be cancelled")


class ReviewApiTests(StorefrontApiTestCase):
    def setUp(self):
        super().setUp()
        self.product = self.db.create_product(name="Serum", price=50000, stock=10)
        self.user = self.create_user()

    def post_review(self, **overrides):
        payload = {
            "productId": self.product.id,
            "rating": 4,
            "comment": "Really nice texture and scent.",
        }
        payload.update(overrides)
        return self.client.post("/api/reviews", json=payload)

    def test_create_review_requires_login(self):
        response = self.post_review()
        self.assertEqual(response.status_code, 401)

    def test_create_review_updates_product_rating(self):
        self.login_cookie(self.user)
        response = self.post_review()
        self.assertEqual(response.status_code, 201)
        data = response.json()["data"]
        self.assertEqual(data["userId"], self.user.id)
        self.assertIn("ui-avatars.com", data["userAvatar"])
        self.assertFalse(data["verified"])

        product = self.db.get_product(self.product.id)
        self.assertEqual(product.rating, 4)
        self.assertEqual(product.reviews_count, 1)

    def test_create_review_validation(self):
        self.login_cookie(self.user)
        self.assertEqual(self.post_review(rating=6).status_code, 400)
        self.assertEqual(self.post_review(comment="   short   ").status_code, 400)
        self.assertEqual(self.post_review(productId=999).status_code, 404)

        self.assertEqual(self.post_review().status_code, 201)
        duplicate = self.post_review()
        self.assertEqual(duplicate.status_code, 409)

    def test_list_reviews_includes_stats(self):
        other = self.create_user(email="lee@shop.test")
        self.db.create_review(
            product_id=self.product.id, user_id=self.user.id, user_name="Pat",
            rating=5, comment="Great product overall", verified=True,
        )
        self.db.create_review(
            product_id=self.product.id, user_id=other.id, user_name="Lee",
            rating=2, comment="Not for my skin type",
        )
        response = self.client.get("/api/reviews", params={"productId": self.product.id})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(len(payload["data"]), 2)
        self.assertEqual(payload["stats"]["totalReviews"], 2)
        self.assertEqual(payload["stats"]["averageRating"], 3.5)
        self.assertEqual(payload["stats"]["verifiedReviews"], 1)
        self.assertEqual(payload["pagination"]["totalPages"], 1)

        verified = self.client.get("/api/reviews", params={"verified": "true"})
        self.assertEqual(len(verified.json()["data"]), 1)

    def test_update_review_only_by_owner(self):
        self.login_cookie(self.user)
        review_id = self.post_review().json()["data"]["id"]

        updated = self.client.put(
            "/api/reviews", json={"id": review_id, "rating": 2}
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["data"]["rating"], 2)
        self.assertEqual(self.db.get_product(self.product.id).rating, 2)

        other = self.create_user(email="lee@shop.test")
        self.login_cookie(other)
        denied = self.client.put("/api/reviews", json={"id": review_id, "rating": 5})
        self.assertEqual(denied.status_code, 404)

    def test_delete_review_by_owner_or_admin(self):
        self.login_cookie(self.user)
        review_id = self.post_review().json()["data"]["id"]

        other = self.create_user(email="lee@shop.test")
        self.login_cookie(other)
        denied = self.client.delete("/api/reviews", params={"id": review_id})
        self.assertEqual(denied.status_code, 403)

        admin = self.create_user(email="boss@shop.test", role="admin")
        self.login_cookie(admin)
        deleted = self.client.delete("/api/reviews", params={"id": review_id})
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(self.db.get_product(self.product.id).reviews_count, 0)

    def test_review_stats_endpoint(self):
        self.db.create_review(
            product_id=self.product.id, user_id="u1", user_name="A",
            rating=5, comment="Lovely and light", verified=False,
        )
        self.db.create_review(
            product_id=self.product.id, user_id="u2", user_name="B",
            rating=4, comment="Works as promised", verified=True,
        )
        response = self.client.get(
            "/api/reviews/stats", params={"productId": self.product.id}
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["productName"], "Serum")
        self.assertEqual(data["averageRating"], 4.5)
        self.assertEqual(data["topReviews"][0]["userName"], "B")

        self.assertEqual(self.client.get("/api/reviews/stats").status_code, 400)
        self.assertEqual(
            self.client.get("/api/reviews/stats", params={"productId": 999}).status_code,
            404,
        )

    def test_admin_review_moderation(self):
        review = self.db.create_review(
            product_id=self.product.id, user_id=self.user.id, user_name="Pat",
            rating=3, comment="Average experience",
        )
        self.assertEqual(self.client.get("/api/admin/reviews").status_code, 403)

        listed = self.client.get("/api/admin/reviews", headers=ADMIN_HEADERS)
        self.assertEqual(listed.status_code, 200)
        item = listed.json()["data"][0]
        self.assertEqual(item["productName"], "Serum")
        self.assertEqual(item["userEmail"], "pat@shop.test")
        self.assertEqual(listed.json()["pagination"]["limit"], 20)

        verified = self.client.put(
            "/api/admin/reviews",
            json={"id": review.id, "action": "verify", "verified": True},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(verified.status_code, 200)
        self.assertTrue(verified.json()["data"]["verified"])

        edited = self.client.put(
            "/api/admin/reviews",
            json={"id": review.id, "action": "update", "rating": 5},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(edited.json()["data"]["rating"], 5)
        self.assertEqual(self.db.get_product(self.product.id).rating, 5)

        analytics = self.client.get(
            "/api/admin/reviews", params={"action": "analytics"}, headers=ADMIN_HEADERS
        )
        data = analytics.json()["data"]
        self.assertEqual(data["totalReviews"], 1)
        self.assertEqual(data["pendingVerification"], 0)
        self.assertEqual(len(data["monthlyStats"]), 12)

        bad_action = self.client.put(
            "/api/admin/reviews",
            json={"id": review.id, "action": "archive"},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(bad_action.status_code, 400)


class ProductApiTests(StorefrontApiTestCase):
    def test_create_requires_admin_and_lists(self):
        denied = self.client.post("/api/product", json={"name": "Mask", "price": 10})
        self.assertEqual(denied.status_code, 403)

        created = self.client.post(
            "/api/product", json={"name": "Mask", "price": 10, "stock": 3},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(created.status_code, 201)
        product_id = created.json()["data"]["id"]

        one = self.client.get("/api/product", params={"id": product_id})
        self.assertEqual(one.json()["data"]["name"], "Mask")
        self.assertEqual(len(self.client.get("/api/product").json()["data"]), 1)
        self.assertEqual(
            self.client.get("/api/product", params={"id": 999}).status_code, 404
        )


class FinancialApiTests(StorefrontApiTestCase):
    def test_report_requires_admin(self):
        response = self.client.get("/api/financial")
        self.assertEqual(response.status_code, 403)

    def test_report_counts_delivered_revenue(self):
        user = self.create_user()
        product = self.db.create_product(name="Serum", price=50000, stock=10)
        order = self.db.create_order(
            user_id=user.id,
            total_amount=100000,
            items=[{"productId": product.id, "quantity": 2, "price": 50000}],
            shipping_address="Jl. Mawar 1, Bandung",
        )
        self.db.create_order(
            user_id=user.id, total_amount=20000, shipping_address="Jl. Mawar 1, Bandung"
        )
        self.db.update_order(order.id, {"status": "delivered"})

        response = self.client.get(
            "/api/financial", params={"period": "all"}, headers=ADMIN_HEADERS
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertIn("all data", payload["message"])
        summary = payload["data"]["summary"]
        self.assertEqual(summary["totalOrders"], 2)
        self.assertEqual(summary["completedOrders"], 1)
        self.assertEqual(summary["totalRevenue"], 100000)
        top = payload["data"]["productPerformance"][0]
        self.assertEqual((top["name"], top["totalSold"]), ("Serum", 2))

    def test_report_rejects_out_of_range_quarter(self):
        response = self.client.get(
            "/api/financial",
            params={"period": "quarter", "quarter": 5},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 400)


class UploadApiTests(StorefrontApiTestCase):
    def test_upload_stores_image(self):
        response = self.client.post(
            "/api/upload",
            files={"file": ("photo.png", b"\x89PNG data", "image/png")},
            data={"folder": "banners"},
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertTrue(data["path"].startswith("banners/"))
        self.assertTrue(data["path"].endswith(".png"))
        self.assertTrue(data["url"].endswith(data["path"]))
        self.assertIn(data["path"], get_storage_client().stored_objects)

    def test_upload_extension_follows_content_type(self):
        response = self.client.post(
            "/api/upload",
            files={"file": ("x.b/c", b"\xff\xd8 jpeg", "image/jpeg")},
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertTrue(data["path"].endswith(".jpg"))
        self.assertEqual(data["path"].count("/"), 1)
        self.assertEqual(data["fileName"], data["path"].split("/")[1])

    def test_upload_rejects_wrong_type_and_missing_file(self):
        wrong = self.client.post(
            "/api/upload", files={"file": ("notes.txt", b"hello", "text/plain")}
        )
        self.assertEqual(wrong.status_code, 400)
        missing = self.client.post("/api/upload", data={"folder": "products"})
        self.assertEqual(missing.status_code, 400)

    def test_delete_upload(self):
        storage = get_storage_client()
        storage.upload_bytes("products/old.png", b"x", "image/png")
        response = self.client.delete("/api/upload", params={"path": "products/old.png"})
        self.assertEqual(response.status_code, 200)
        self.assertNotIn("products/old.png", storage.stored_objects)
        self.assertEqual(self.client.delete("/api/upload").status_code, 400)

    @patch("storefront.routes.requests.get")
    def test_upload_from_url(self, mock_get):
        mock_get.return_value = MagicMock(
            ok=True, headers={"content-type": "image/jpeg"}, content=b"jpeg-bytes"
        )
        response = self.client.post(
            "/api/upload-url", json={"imageUrl": "https://cdn.test/a.jpg"}
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertTrue(data["path"].startswith("products/"))
        self.assertTrue(data["fileName"].endswith(".jpg"))
        self.assertEqual(mock_get.call_args.kwargs["timeout"], 30)

    @patch("storefront.routes.requests.get")
    def test_upload_from_url_failures(self, mock_get):
        invalid = self.client.post("/api/upload-url", json={"imageUrl": "not a url"})
        self.assertEqual(invalid.status_code, 400)

        mock_get.return_value = MagicMock(
            ok=True, headers={"content-type": "text/html"}, content=b"<html>"
        )
        wrong_type = self.client.post(
            "/api/upload-url", json={"imageUrl": "https://cdn.test/page"}
        )
        self.assertEqual(wrong_type.status_code, 400)

        mock_get.side_effect = requests.ConnectionError("down")
        down = self.client.post(
            "/api/upload-url", json={"imageUrl": "https://cdn.test/a.jpg"}
        )
        self.assertEqual(down.status_code, 500)


class GuardMiddlewareTests(StorefrontApiTestCase):
    def test_anonymous_admin_request_redirects_to_login(self):
        response = self.client.get("/Admin/products", follow_redirects=False)
        self.assertEqual(response.status_code, 307)
        self.assertEqual(response.headers["location"], "/Login")

    def test_protected_page_requires_session(self):
        response = self.client.get("/checkout", follow_redirects=False)
        self.assertEqual(response.status_code, 307)
        self.assertEqual(response.headers["location"], "/Login")

        self.client.cookies.set(
            "user-auth-token",
            cookie_value({"id": "u1", "email": "pat@shop.test", "role": "user"}),
        )
        allowed = self.client.get("/checkout", follow_redirects=False)
        self.assertEqual(allowed.status_code, 200)

    def test_admin_login_then_customer_page_redirects_to_admin(self):
        self.create_user(email="boss@shop.test", role="admin")
        self.client.post(
            "/api/user", json={"email": "boss@shop.test", "password": "Secret123!"}
        )
        dashboard = self.client.get("/Admin", follow_redirects=False)
        self.assertEqual(dashboard.status_code, 200)

        home = self.client.get("/", follow_redirects=False)
        self.assertEqual(home.status_code, 307)
        self.assertEqual(home.headers["location"], "/Admin")

    def test_customer_cannot_open_admin_area(self):
        self.client.cookies.set(
            "auth-token",
            cookie_value({"id": "u1", "email": "pat@shop.test", "role": "user"}),
        )
        response = self.client.get("/Admin", follow_redirects=False)
        self.assertEqual(response.status_code, 307)
        self.assertEqual(response.headers["location"], "/")

    def test_malformed_legacy_cookie_on_cart_goes_to_login(self):
        self.client.cookies.set("auth-token", "{not-json")
        response = self.client.get("/cart", follow_redirects=False)
        self.assertEqual(response.status_code, 307)
        self.assertEqual(response.headers["location"], "/Login")

    def test_page_titles_escape_path_input(self):
        response = self.client.get("/Detail/%3Cimg%20src%3Dx%20onerror%3Dalert(1)%3E")
        self.assertEqual(response.status_code, 200)
        self.assertNotIn("<img", response.text)
        self.assertIn("&lt;img src=x onerror=alert(1)&gt;", response.text)

    def test_api_requests_skip_the_guard(self):
        response = self.client.get("/api/product", follow_redirects=False)
        self.assertEqual(response.status_code, 200)

    def test_public_pages_are_open(self):
        self.assertEqual(self.client.get("/Login").status_code, 200)
        self.assertEqual(self.client.get("/Register").status_code, 200)


if __name__ == "__main__":
    unittest.main()
