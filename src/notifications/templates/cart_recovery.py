"""Cart recovery template — sent a while after a cart is abandoned."""

from html import escape


def format_price(cents: int) -> str:
    return f"${cents / 100:.2f}"


class CartRecoveryTemplate:
    subject = "Your cart is waiting"

    @staticmethod
    def render(context: dict) -> dict:
        """Render the recovery email.

        Context keys: customer_name, items (list of {name, unit_price, quantity}),
        total_value (cents) and cart_url.
        """
        name = context.get("customer_name") or "there"
        items = context.get("items") or []
        total = format_price(context.get("total_value", 0))
        cart_url = context["cart_url"]

        lines = [
            f"  {item.get('name') or item.get('product_id')} x{item['quantity']}  "
            f"{format_price(item['unit_price'] * item['quantity'])}"
            for item in items
        ]
        body = (
            f"Hi {name},\n\n"
            "You left some items in your cart:\n\n"
            + "\n".join(lines)
            + f"\n\nTotal: {total}\n\n"
            f"Pick up where you left off: {cart_url}\n"
        )

        rows = "".join(
            f'<div class="cart-item"><span class="item-name">'
            f"{escape(item.get('name') or item.get('product_id') or '')} x{item['quantity']}</span>"
            f'<span class="item-price">{format_price(item["unit_price"] * item["quantity"])}</span></div>'
            for item in items
        )
        html_body = (
            "<html><body>"
            f"<h1>Your cart is waiting</h1><p>Hi {escape(name)},</p>"
            f'<div class="cart-items">{rows}</div>'
            f'<p class="total">Total: {total}</p>'
            f'<a class="button" href="{escape(cart_url, quote=True)}">Complete your order</a>'
            "</body></html>"
        )

        return {"subject": CartRecoveryTemplate.subject, "body": body, "html_body": html_body}
