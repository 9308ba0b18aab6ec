from typing import Iterable, List, Literal, Optional, Sequence

from api.models import Product

_ALIGN = {"l": ":---", "c": ":---:", "r": "---:"}


def format_price(amount: float) -> str:
    return f"${amount:,.2f}"


def markdown_table(
    rows: Iterable[Sequence[object]],
    headers: Sequence[str],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Render rows as a Markdown table. Alignment defaults to left for every
    column; a mismatched aligns list raises ValueError.
    """
    aligns = aligns or ["l"] * len(headers)
    if len(aligns) != len(headers):
        raise ValueError("aligns must have one entry per header")

    def line(cells: Iterable[object]) -> str:
        return "| " + " | ".join(str(c).replace("|", "\\|") for c in cells) + " |"

    return "\n".join(
        [line(headers), line(_ALIGN[a] for a in aligns), *(line(r) for r in rows)]
    )


def product_markdown(product: Product, in_cart: int = 0, available: int = 0) -> str:
    rows = [
        ["ID", product.id],
        ["Category", product.category],
        ["Price", format_price(product.price)],
        ["In stock", product.quantity if product.in_stock else "Out of stock"],
        ["In your cart", in_cart],
        ["Can still add", available],
    ]
    if product.image_url:
        rows.append(["Image", product.image_url])
    return (
        f"### {product.name}\n\n{product.description}\n\n"
        + markdown_table(rows, ["Attribute", "Value"])
    )

