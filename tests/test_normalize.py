"""
Unit tests for recording/normalize.py

Tests the per-exchange checks:
- parameters (path, query, request/response headers)
- request and response fields, including optional/ignored/subsection
- declared field types
- HAL link relations
- coverage annotation on the produced example
"""

import pytest

from contract_recorder.contracts.errors import (
    FieldTypeMismatchError,
    InvalidOperationError,
    MissingFieldError,
    MissingLinkError,
    MissingParameterError,
    NormalizationError,
)
from contract_recorder.contracts.models import ContractModel
from contract_recorder.recording.exchange import Coverage, Example, RecordedRequest, RecordedResponse
from contract_recorder.recording.normalize import ExchangeNormalizer, normalize

from .conftest import hal_example, json_example


CART_GET = ContractModel.from_config({
    "description": "Get a cart by id",
    "pathParameters": [{"name": "id", "description": "the cart id"}],
    "responseFields": [
        {"path": "total", "description": "Total amount of the cart."},
        {"path": "products", "description": "The product line item of the cart."},
        {"path": "products[]._links.product", "description": "Link to the product.", "subsection": True},
        {"path": "products[].quantity", "description": "The quantity of the line item."},
        {"path": "products[].product", "description": "The product.", "subsection": True},
        {"path": "_links", "description": "Links section.", "subsection": True},
    ],
    "links": [
        {"rel": "self", "ignored": True},
        {"rel": "order", "description": "Link to order the cart."},
    ],
})


class TestSuccessfulNormalization:
    """Valid exchanges produce one annotated example."""

    def test_cart_get(self, cart_body):
        op = normalize("cart-get", "get", "/carts/{id}", CART_GET, hal_example(cart_body, uri="/carts/42"))

        assert op.operation_id == "cart-get"
        assert op.method == "GET"
        assert op.path_template == "/carts/{id}"
        assert op.contract is CART_GET
        assert len(op.examples) == 1

        example = op.examples[0]
        assert example.request.method == "GET"
        assert example.request.path_values == {"id": "42"}
        assert example.coverage.path_parameters == {"id"}
        assert example.coverage.links == {"order"}
        assert example.coverage.response_fields == {
            "total", "products", "products[]._links.product",
            "products[].quantity", "products[].product", "_links",
        }
        assert example.coverage.undocumented_fields == frozenset()

    def test_coverage_excludes_ignored_and_unexercised(self, cart_body):
        contract = ContractModel.from_config({
            "description": "Get a cart",
            "responseFields": [
                {"path": "total"},
                {"path": "discount", "optional": True},
                {"path": "products", "ignored": True},
            ],
        })
        op = normalize("cart-get", "GET", "/carts/{id}", contract, json_example(body=cart_body))

        assert op.examples[0].coverage.response_fields == {"total"}

    def test_supplied_path_values_override_uri(self, cart_body):
        example = hal_example(cart_body, uri="/carts/42", path_values={"id": "7"})
        op = normalize("cart-get", "GET", "/carts/{id}", CART_GET, example)
        assert op.examples[0].request.path_values == {"id": "7"}

    def test_path_values_without_uri(self, cart_body):
        example = hal_example(cart_body, path_values={"id": "42"})
        op = normalize("cart-get", "GET", "/carts/{id}", CART_GET, example)
        assert op.examples[0].coverage.path_parameters == {"id"}

    def test_query_parameters_from_uri(self):
        contract = ContractModel.from_config({
            "description": "Search products",
            "queryParameters": [{"name": "q"}, {"name": "page", "optional": True}],
        })
        op = normalize("product-search", "GET", "/products", contract, json_example(uri="/products?q=pants"))
        assert op.examples[0].coverage.query_parameters == {"q"}

    def test_headers_are_case_insensitive(self):
        contract = ContractModel.from_config({
            "description": "Create a cart",
            "requestHeaders": [{"name": "Content-Type"}],
            "responseHeaders": [{"name": "Location"}],
        })
        example = json_example(
            201,
            request_headers={"content-type": "application/json"},
            response_headers={"location": "http://localhost/carts/1"},
        )
        op = normalize("carts-create", "POST", "/carts", contract, example)

        assert op.examples[0].coverage.request_headers == {"Content-Type"}
        assert op.examples[0].coverage.response_headers == {"Location"}

    def test_request_fields(self):
        contract = ContractModel.from_config({
            "description": "Add a product",
            "requestFields": [{"path": "productId", "type": "integer"}, {"path": "note", "optional": True}],
        })
        example = json_example(204, request_body={"productId": 7})
        op = normalize("cart-add-product", "POST", "/carts/{id}/products", contract, example)
        assert op.examples[0].coverage.request_fields == {"productId"}

    def test_response_fields_skipped_without_body(self):
        contract = ContractModel.from_config({
            "description": "Order a cart",
            "responseFields": [{"path": "orderId"}],
        })
        op = normalize("cart-order", "POST", "/carts/{id}/order", contract, json_example(204))
        assert op.examples[0].coverage.response_fields == frozenset()

    def test_undocumented_top_level_keys(self, cart_body):
        cart_body["discount"] = 5
        contract = ContractModel.from_config({
            "description": "Get a cart",
            "responseFields": [{"path": "total"}, {"path": "products"}],
            "links": [{"rel": "order"}],
        })
        op = normalize("cart-get", "GET", "/carts/{id}", contract, hal_example(cart_body))
        assert op.examples[0].coverage.undocumented_fields == {"discount"}

    @pytest.mark.parametrize("subsection", [False, True])
    def test_nested_keys_are_never_undocumented(self, cart_body, subsection):
        cart_body["products"][0]["product"]["sku"] = "FP-1"
        contract = ContractModel.from_config({
            "description": "Get a cart",
            "responseFields": [
                {"path": "total"},
                {"path": "products[].product", "subsection": subsection},
                {"path": "_links", "ignored": True},
            ],
        })
        op = normalize("cart-get", "GET", "/carts/{id}", contract, json_example(body=cart_body))
        assert op.examples[0].coverage.undocumented_fields == frozenset()

    def test_no_undocumented_keys_without_declared_fields(self, cart_body):
        op = normalize("cart-get", "GET", "/carts/{id}", ContractModel.describe("Get a cart"), json_example(body=cart_body))
        assert op.examples[0].coverage == Coverage()

    def test_deterministic(self, cart_body):
        example = hal_example(cart_body, uri="/carts/42")
        first = normalize("cart-get", "GET", "/carts/{id}", CART_GET, example)
        second = normalize("cart-get", "GET", "/carts/{id}", CART_GET, example)
        assert first == second

    def test_input_example_untouched(self, cart_body):
        example = hal_example(cart_body, uri="/carts/42")
        normalize("cart-get", "GET", "/carts/{id}", CART_GET, example)
        assert example.coverage is None
        assert example.request.method is None


class TestMissingParameters:

    def test_missing_path_parameter(self, cart_body):
        with pytest.raises(MissingParameterError) as exc:
            normalize("cart-get", "GET", "/carts/{id}", CART_GET, hal_example(cart_body))
        assert exc.value.name == "id"
        assert exc.value.location == "path"
        assert exc.value.operation_id == "cart-get"

    def test_missing_request_header(self):
        contract = ContractModel.from_config({
            "description": "Add invoice",
            "requestHeaders": [{"name": "Content-Type"}],
        })
        with pytest.raises(MissingParameterError) as exc:
            normalize("cart-add-invoice", "POST", "/carts/{id}/invoice", contract, json_example(201))
        assert exc.value.location == "header"

    def test_missing_response_header(self):
        contract = ContractModel.from_config({
            "description": "Create a cart",
            "responseHeaders": [{"name": "Location"}],
        })
        with pytest.raises(MissingParameterError):
            normalize("carts-create", "POST", "/carts", contract, json_example(201))

    def test_optional_parameter_may_be_absent(self):
        contract = ContractModel.from_config({
            "description": "List carts",
            "queryParameters": [{"name": "page", "optional": True}],
        })
        op = normalize("carts-list", "GET", "/carts", contract, json_example())
        assert op.examples[0].coverage.query_parameters == frozenset()


class TestMissingFields:

    def test_missing_response_field(self):
        contract = ContractModel.from_config({
            "description": "Get a cart",
            "responseFields": [{"path": "total"}, {"path": "products"}],
        })
        with pytest.raises(MissingFieldError) as exc:
            normalize("cart-get", "GET", "/carts/{id}", contract, json_example(body={"total": 0}))

        assert exc.value.path == "products"
        assert exc.value.section == "response"
        assert isinstance(exc.value, NormalizationError)

    def test_missing_request_field(self):
        contract = ContractModel.from_config({
            "description": "Add a product",
            "requestFields": [{"path": "productId"}],
        })
        with pytest.raises(MissingFieldError) as exc:
            normalize("cart-add-product", "POST", "/carts/{id}/products", contract, json_example(request_body={}))
        assert exc.value.section == "request"

    def test_ignored_field_may_be_absent(self):
        contract = ContractModel.from_config({
            "description": "Get a cart",
            "responseFields": [{"path": "total"}, {"path": "legacy", "ignored": True}],
        })
        op = normalize("cart-get", "GET", "/carts/{id}", contract, json_example(body={"total": 0}))
        assert op.examples[0].coverage.response_fields == {"total"}

    def test_non_json_body_has_no_fields(self):
        contract = ContractModel.from_config({
            "description": "Get a cart",
            "responseFields": [{"path": "total"}],
        })
        example = Example(
            request=RecordedRequest(),
            response=RecordedResponse(body=b"total=1", content_type="text/plain"),
        )
        with pytest.raises(MissingFieldError):
            normalize("cart-get", "GET", "/carts/{id}", contract, example)


class TestFieldTypes:

    CONTRACT = ContractModel.from_config({
        "description": "Get a cart",
        "responseFields": [
            {"path": "total", "type": "number"},
            {"path": "products[].quantity", "type": "integer"},
        ],
    })

    def test_matching_types(self, cart_body):
        normalize("cart-get", "GET", "/carts/{id}", self.CONTRACT, json_example(body=cart_body))

    def test_mismatch(self, cart_body):
        cart_body["products"][0]["quantity"] = "one"
        with pytest.raises(FieldTypeMismatchError) as exc:
            normalize("cart-get", "GET", "/carts/{id}", self.CONTRACT, json_example(body=cart_body))

        assert exc.value.path == "products[].quantity"
        assert exc.value.expected == "integer"
        assert exc.value.received == "string"

    def test_null_values_are_not_checked(self, cart_body):
        cart_body["total"] = None
        normalize("cart-get", "GET", "/carts/{id}", self.CONTRACT, json_example(body=cart_body))

    def test_trailing_array_path_checks_the_array(self, cart_body):
        contract = ContractModel.from_config({
            "description": "Get a cart",
            "responseFields": [{"path": "products[]", "type": "array"}],
        })
        normalize("cart-get", "GET", "/carts/{id}", contract, json_example(body=cart_body))

    def test_trailing_array_path_rejects_object_type(self, cart_body):
        contract = ContractModel.from_config({
            "description": "Get a cart",
            "responseFields": [{"path": "products[]", "type": "object"}],
        })
        with pytest.raises(FieldTypeMismatchError) as exc:
            normalize("cart-get", "GET", "/carts/{id}", contract, json_example(body=cart_body))
        assert exc.value.received == "array"

    def test_type_validation_can_be_disabled(self, cart_body):
        cart_body["total"] = "49.99"
        normalizer = ExchangeNormalizer(validate_types=False)
        normalizer.normalize("cart-get", "GET", "/carts/{id}", self.CONTRACT, json_example(body=cart_body))


class TestLinks:

    def test_missing_link(self, cart_body):
        del cart_body["_links"]["order"]
        with pytest.raises(MissingLinkError) as exc:
            normalize("cart-get", "GET", "/carts/{id}", CART_GET, hal_example(cart_body, uri="/carts/42"))

        assert exc.value.rel == "order"
        assert exc.value.details["present"] == ["self"]

    def test_ignored_link_may_be_absent(self, cart_body):
        del cart_body["_links"]["self"]
        op = normalize("cart-get", "GET", "/carts/{id}", CART_GET, hal_example(cart_body, uri="/carts/42"))
        assert op.examples[0].coverage.links == {"order"}

    def test_optional_link(self, cart_body):
        contract = CART_GET.model_copy(update={"links": CART_GET.links + (
            CART_GET.links[1].model_copy(update={"rel": "checkout", "optional": True}),
        )})
        op = normalize("cart-get", "GET", "/carts/{id}", contract, hal_example(cart_body, uri="/carts/42"))
        assert op.examples[0].coverage.links == {"order"}

    def test_links_skipped_for_plain_json(self, cart_body):
        del cart_body["_links"]
        contract = ContractModel.from_config({
            "description": "Get a cart",
            "links": [{"rel": "order"}],
        })
        op = normalize("cart-get", "GET", "/carts/{id}", contract, json_example(body=cart_body))
        assert op.examples[0].coverage.links == frozenset()


class TestInvalidOperation:

    @pytest.mark.parametrize("method", ["FETCH", "", None])
    def test_unknown_method(self, method):
        with pytest.raises(InvalidOperationError):
            normalize("cart-get", method, "/carts/{id}", CART_GET, json_example())

    @pytest.mark.parametrize("template", ["carts/{id}", "", "/carts/{id", "/carts/{}"])
    def test_malformed_template(self, template):
        with pytest.raises(InvalidOperationError):
            normalize("cart-get", "GET", template, CART_GET, json_example())

    def test_empty_operation_id(self):
        with pytest.raises(InvalidOperationError):
            normalize("", "GET", "/carts", ContractModel.describe("x"), json_example())
