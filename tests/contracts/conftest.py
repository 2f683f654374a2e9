"""
Pytest fixtures for documenting a small HAL cart service through Flask.
"""

import itertools

import pytest
from flask import Flask, abort, jsonify, request, url_for

from contract_recorder.harness.flask_client import FlaskDocumenter


PRODUCTS = {
    7: {"name": "Fancy pants", "price": 49.99},
    8: {"name": "Plain socks", "price": 5.0},
}

HAL_JSON = "application/hal+json"


def create_cart_app() -> Flask:
    """Create the cart service used by the documentation tests."""
    app = Flask("cart_service")
    app.config['TESTING'] = True

    carts = {}
    ids = itertools.count(1)

    def cart_body(cart_id):
        lines = carts[cart_id]
        return {
            "total": round(sum(PRODUCTS[pid]["price"] * qty for pid, qty in lines.items()), 2),
            "products": [
                {
                    "quantity": qty,
                    "product": PRODUCTS[pid],
                    "_links": {"product": {"href": url_for("get_product", product_id=pid, _external=True)}},
                }
                for pid, qty in lines.items()
            ],
            "_links": {
                "self": {"href": url_for("get_cart", id=cart_id, _external=True)},
                "order": {"href": url_for("order_cart", id=cart_id, _external=True)},
            },
        }

    def hal(body, status=200):
        response = jsonify(body)
        response.status_code = status
        response.mimetype = HAL_JSON
        return response

    @app.route("/carts", methods=["POST"])
    def create_cart():
        cart_id = next(ids)
        carts[cart_id] = {}
        return "", 201, {"Location": url_for("get_cart", id=cart_id, _external=True)}

    @app.route("/carts/<int:id>", methods=["GET"])
    def get_cart(id):
        if id not in carts:
            abort(404)
        return hal(cart_body(id))

    @app.route("/carts/<int:id>/products", methods=["POST"])
    def add_product(id):
        if id not in carts:
            abort(404)
        # text/uri-list: one product URI per line
        for line in request.get_data(as_text=True).splitlines():
            if not line.strip() or line.startswith("#"):
                continue
            product_id = int(line.rstrip("/").rsplit("/", 1)[-1])
            if product_id not in PRODUCTS:
                abort(400)
            carts[id][product_id] = carts[id].get(product_id, 0) + 1
        return hal(cart_body(id))

    @app.route("/carts/<id>/invoice", methods=["POST"])
    def add_invoice(id):
        if "invoice" not in request.files:
            abort(400)
        return "", 200

    @app.route("/carts/<int:id>/order", methods=["POST"])
    def order_cart(id):
        if not carts.get(id):
            return jsonify({"error": "cart is empty"}), 409
        body = {"cart": id, "status": "ordered", "total": cart_body(id)["total"]}
        carts[id] = {}
        return hal(body)

    @app.route("/products/<int:product_id>", methods=["GET"])
    def get_product(product_id):
        if product_id not in PRODUCTS:
            abort(404)
        return hal(PRODUCTS[product_id])

    return app


@pytest.fixture
def app():
    return create_cart_app()


@pytest.fixture
def documenter(app, recorder):
    """FlaskDocumenter recording into the per-test registry."""
    return FlaskDocumenter(app, recorder)


@pytest.fixture
def cart_id(documenter):
    """Create a cart and return its id (not documented)."""
    exchange = documenter.perform("POST", "/carts")
    assert exchange.response.status_code == 201
    return exchange.response.headers["Location"].rsplit("/", 1)[-1]


@pytest.fixture
def cart_with_product(documenter, cart_id):
    exchange = documenter.perform(
        "POST", f"/carts/{cart_id}/products",
        data="http://localhost/products/7", content_type="text/uri-list",
    )
    assert exchange.response.status_code == 200
    return cart_id
