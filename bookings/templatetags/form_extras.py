from decimal import Decimal, InvalidOperation

from django import template

register = template.Library()


@register.filter
def add_class(field, css_class):
    """Render a bound field with an extra CSS class."""
    existing = field.field.widget.attrs.get("class", "")
    classes = f"{existing} {css_class}".strip()
    return field.as_widget(attrs={**field.field.widget.attrs, "class": classes})


@register.filter
def czk(value):
    """Format an amount as Czech crowns: 12500.5 -> '12 500,50 Kč'."""
    if value in (None, ""):
        return ""
    try:
        number = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return value
    text = f"{number:,.2f}".replace(",", " ").replace(".", ",")
    if text.endswith(",00"):
        text = text[:-3]
    return f"{text} Kč"
