from notifications.templates.cart_recovery import CartRecoveryTemplate, format_price

CONTEXT = {
    "customer_name": "Alice",
    "items": [
        {"product_id": "p1", "name": "Widget", "unit_price": 1000, "quantity": 2},
        {"product_id": "p2", "name": "", "unit_price": 250, "quantity": 1},
    ],
    "total_value": 2250,
    "cart_url": "https://shop.test/cart?recovery=abc",
}


class TestFormatPrice:
    def test_formats_minor_units(self):
        assert format_price(2250) == "$22.50"
        assert format_price(0) == "$0.00"


class TestRender:
    def test_subject(self):
        assert CartRecoveryTemplate.render(CONTEXT)["subject"] == "Your cart is waiting"

    def test_text_body(self):
        body = CartRecoveryTemplate.render(CONTEXT)["body"]

        assert body.startswith("Hi Alice,")
        assert "Widget x2  $20.00" in body
        assert "p2 x1  $2.50" in body
        assert "Total: $22.50" in body
        assert CONTEXT["cart_url"] in body

    def test_html_escapes_customer_values(self):
        context = dict(CONTEXT, customer_name="<script>")
        html = CartRecoveryTemplate.render(context)["html_body"]

        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_missing_name_falls_back(self):
        body = CartRecoveryTemplate.render(dict(CONTEXT, customer_name=""))["body"]
        assert body.startswith("Hi there,")
