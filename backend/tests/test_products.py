"""
Product API tests.

Verifies:
- Public listing with filters, sorting and pagination
- Owner-or-admin writes
- Multipart image upload, replacement and cleanup
"""

import io
import os

import pytest

from marketplace.models import Category, Product, Review


def _png(name="pic.png"):
    return (io.BytesIO(b"\x89PNG\r\n\x1a\nfake"), name, "image/png")


def _upload_path(app, image_url):
    return os.path.join(app.config["UPLOAD_FOLDER"], image_url[len("/uploads/"):])


# =============================================================================
# LISTING
# =============================================================================


class TestListProducts:

    @pytest.fixture
    def catalogue(self, db_session, make_product, category):
        fruit = Category(name="Fruit")
        db_session.add(fruit)
        db_session.commit()
        return {
            "carrots": make_product(name="Carrots", price="3.00"),
            "cabbage": make_product(name="Cabbage", price="7.50"),
            "apples": make_product(name="Green Apples", price="12.00", category_id=fruit.id),
            "fruit": fruit,
        }

    def test_public_listing(self, client, catalogue):
        resp = client.get("/api/products")

        assert resp.status_code == 200
        assert resp.json["status"] == "success"
        assert resp.json["results"] == 3
        product = resp.json["data"]["products"][0]
        assert {"producer", "category", "imageUrl", "categoryId"} <= set(product)
        assert resp.json["data"]["pagination"]["total"] == 3

    def test_name_filter_is_case_insensitive(self, client, catalogue):
        resp = client.get("/api/products?name=CAB")
        assert [p["name"] for p in resp.json["data"]["products"]] == ["Cabbage"]

    def test_price_range(self, client, catalogue):
        resp = client.get("/api/products?price[gte]=5&price[lte]=10")
        assert [p["name"] for p in resp.json["data"]["products"]] == ["Cabbage"]

    def test_category_filter(self, client, catalogue):
        resp = client.get(f"/api/products?categoryId={catalogue['fruit'].id}")
        assert [p["name"] for p in resp.json["data"]["products"]] == ["Green Apples"]

    def test_sort_descending_price(self, client, catalogue):
        resp = client.get("/api/products?sort=-price")
        assert [p["price"] for p in resp.json["data"]["products"]] == ["12.00", "7.50", "3.00"]

    def test_sort_by_name(self, client, catalogue):
        resp = client.get("/api/products?sort=name")
        assert [p["name"] for p in resp.json["data"]["products"]] == ["Cabbage", "Carrots", "Green Apples"]

    def test_unknown_sort_field(self, client, catalogue):
        resp = client.get("/api/products?sort=password_hash")
        assert resp.status_code == 400

    def test_pagination(self, client, catalogue):
        resp = client.get("/api/products?sort=price&page=2&limit=2")

        assert resp.json["results"] == 1
        assert resp.json["data"]["products"][0]["name"] == "Green Apples"
        pagination = resp.json["data"]["pagination"]
        assert pagination["totalPages"] == 2
        assert pagination["hasPrev"] is True
        assert pagination["hasNext"] is False

    def test_limit_is_capped(self, client, catalogue):
        resp = client.get("/api/products?limit=1000")
        assert resp.json["data"]["pagination"]["limit"] == 100

    @pytest.mark.parametrize("query", ["page=0", "limit=abc", "price[gte]=cheap"])
    def test_bad_query_params(self, client, catalogue, query):
        resp = client.get(f"/api/products?{query}")
        assert resp.status_code == 400

    def test_my_products(self, client, auth_headers, producer, outsider, catalogue, make_product):
        make_product(name="Not mine", owner=outsider)

        resp = client.get("/api/products/my-products", headers=auth_headers(producer))

        assert resp.status_code == 200
        assert resp.json["results"] == 3
        assert all(p["userId"] == producer.id for p in resp.json["data"]["products"])


# =============================================================================
# DETAIL
# =============================================================================


class TestGetProduct:

    def test_detail_with_rating_summary(self, client, db_session, product, buyer, outsider):
        db_session.add_all([
            Review(review="Crunchy", rating=5, user_id=buyer.id, product_id=product.id),
            Review(review="Fine", rating=4, user_id=outsider.id, product_id=product.id),
        ])
        db_session.commit()

        resp = client.get(f"/api/products/{product.id}")

        assert resp.status_code == 200
        data = resp.json["data"]["product"]
        assert data["name"] == "Carrots"
        assert data["price"] == "10.00"
        assert data["producer"]["name"] == "Pete Producer"
        assert data["category"]["name"] == "Vegetables"
        assert data["rating"] == {"average": "4.50", "count": 2}

    def test_detail_without_reviews(self, client, product):
        resp = client.get(f"/api/products/{product.id}")
        assert resp.json["data"]["product"]["rating"] == {"average": None, "count": 0}

    def test_missing(self, client, db_session):
        resp = client.get("/api/products/999")
        assert resp.status_code == 404
        assert resp.json["status"] == "fail"


# =============================================================================
# CREATE / UPDATE / DELETE
# =============================================================================


class TestProductWrites:

    def test_create_json(self, client, auth_headers, producer, category):
        resp = client.post(
            "/api/products",
            json={"name": "Leeks", "price": 4.5, "stock": 12, "categoryId": category.id},
            headers=auth_headers(producer),
        )

        assert resp.status_code == 201
        data = resp.json["data"]["product"]
        assert data["price"] == "4.50"
        assert data["stock"] == 12
        assert data["userId"] == producer.id
        assert data["status"] == "available"
        assert data["imageUrl"] is None

    def test_create_requires_auth(self, client, category):
        resp = client.post("/api/products", json={"name": "Leeks", "price": 1, "categoryId": category.id})
        assert resp.status_code == 401

    def test_create_unknown_category(self, client, auth_headers, producer, category):
        resp = client.post(
            "/api/products",
            json={"name": "Leeks", "price": 1, "categoryId": 9999},
            headers=auth_headers(producer),
        )
        assert resp.status_code == 404

    @pytest.mark.parametrize(
        "payload",
        [
            {"price": 1},
            {"name": "Leeks", "price": -1},
            {"name": "Leeks", "price": 1, "stock": -3},
            {"name": "Leeks", "price": "free"},
            {"name": "Leeks", "price": 1, "stock": 2.5},
            {"name": "Leeks", "price": 1, "userId": 1},
            {"name": "Leeks", "price": "1e30"},
            {"name": "Leeks", "price": "100000000"},
            {"name": "Leeks", "price": 1, "stock": 10**20},
            {"name": "Leeks", "price": 1, "stock": "99999999999"},
        ],
    )
    def test_create_validation(self, client, auth_headers, producer, category, payload):
        payload = dict(payload, categoryId=category.id)
        resp = client.post("/api/products", json=payload, headers=auth_headers(producer))
        assert resp.status_code == 400
        assert resp.json["status"] == "fail"

    def test_create_multipart_with_image(self, app, client, auth_headers, producer, category):
        resp = client.post(
            "/api/products",
            data={
                "name": "Radishes",
                "price": "2.20",
                "stock": "7",
                "categoryId": str(category.id),
                "image": _png(),
            },
            content_type="multipart/form-data",
            headers=auth_headers(producer),
        )

        assert resp.status_code == 201
        data = resp.json["data"]["product"]
        assert data["stock"] == 7
        assert data["imageUrl"].startswith("/uploads/products/product-")
        assert data["imageUrl"].endswith(".png")
        assert os.path.exists(_upload_path(app, data["imageUrl"]))

        served = client.get(data["imageUrl"])
        assert served.status_code == 200

    def test_non_image_upload_rejected(self, client, db_session, auth_headers, producer, category):
        resp = client.post(
            "/api/products",
            data={
                "name": "Radishes",
                "price": "2.20",
                "categoryId": str(category.id),
                "image": (io.BytesIO(b"hello"), "notes.txt", "text/plain"),
            },
            content_type="multipart/form-data",
            headers=auth_headers(producer),
        )

        assert resp.status_code == 400
        assert db_session.query(Product).count() == 0

    def test_owner_updates(self, client, auth_headers, producer, product):
        resp = client.put(
            f"/api/products/{product.id}",
            json={"price": "11.25", "stock": 0},
            headers=auth_headers(producer),
        )

        assert resp.status_code == 200
        data = resp.json["data"]["product"]
        assert data["price"] == "11.25"
        assert data["stock"] == 0
        assert data["name"] == "Carrots"

    def test_admin_updates(self, client, auth_headers, admin, product):
        resp = client.put(f"/api/products/{product.id}", json={"name": "Baby carrots"}, headers=auth_headers(admin))
        assert resp.status_code == 200
        assert product.name == "Baby carrots"

    def test_stranger_cannot_update(self, client, auth_headers, outsider, product):
        resp = client.put(f"/api/products/{product.id}", json={"price": 1}, headers=auth_headers(outsider))
        assert resp.status_code == 403
        assert product.price == 10

    def test_update_to_unknown_category(self, client, auth_headers, producer, product):
        resp = client.put(f"/api/products/{product.id}", json={"categoryId": 4242}, headers=auth_headers(producer))
        assert resp.status_code == 404

    def test_new_image_replaces_old_file(self, app, client, auth_headers, producer, category):
        headers = auth_headers(producer)
        created = client.post(
            "/api/products",
            data={"name": "Beets", "price": "3", "categoryId": str(category.id), "image": _png("a.png")},
            content_type="multipart/form-data",
            headers=headers,
        ).json["data"]["product"]
        old_path = _upload_path(app, created["imageUrl"])

        updated = client.put(
            f"/api/products/{created['id']}",
            data={"image": (io.BytesIO(b"GIF89a"), "b.gif", "image/gif")},
            content_type="multipart/form-data",
            headers=headers,
        ).json["data"]["product"]

        assert updated["imageUrl"] != created["imageUrl"]
        assert updated["imageUrl"].endswith(".gif")
        assert not os.path.exists(old_path)
        assert os.path.exists(_upload_path(app, updated["imageUrl"]))

    def test_owner_deletes_with_reviews_and_image(self, app, client, db_session, auth_headers, producer, buyer, category):
        headers = auth_headers(producer)
        created = client.post(
            "/api/products",
            data={"name": "Kale", "price": "3", "categoryId": str(category.id), "image": _png()},
            content_type="multipart/form-data",
            headers=headers,
        ).json["data"]["product"]
        db_session.add(Review(review="Leafy", rating=3, user_id=buyer.id, product_id=created["id"]))
        db_session.commit()

        resp = client.delete(f"/api/products/{created['id']}", headers=headers)

        assert resp.status_code == 204
        assert resp.data == b""
        assert db_session.get(Product, created["id"]) is None
        assert db_session.query(Review).count() == 0
        assert not os.path.exists(_upload_path(app, created["imageUrl"]))

    def test_stranger_cannot_delete(self, client, db_session, auth_headers, outsider, product):
        resp = client.delete(f"/api/products/{product.id}", headers=auth_headers(outsider))
        assert resp.status_code == 403
        assert db_session.get(Product, product.id) is not None

    def test_delete_survives_missing_image_file(self, client, db_session, auth_headers, producer, make_product):
        ghost = make_product(name="Ghost", image_url="/uploads/products/product-0.png")

        resp = client.delete(f"/api/products/{ghost.id}", headers=auth_headers(producer))
        assert resp.status_code == 204
