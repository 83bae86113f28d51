"""
Cas d'usage 'shipping': cotação a partir da sacola.
- Dimensões padrão por unidade (0,3 kg, 11×17×11 cm); um kit pesa par produit composant.
- Deux options au plus: 'standard' (moins chère) et 'express' (plus rapide, si différente).
"""
from typing import Any, Dict, List, Optional
import math
import re

from storefront import config
from storefront.errors import InvalidCheckoutError
from storefront.shipping import melhor_envio_client

DEFAULT_WEIGHT_KG = 0.3
DEFAULT_WIDTH_CM = 11
DEFAULT_HEIGHT_CM = 17
DEFAULT_LENGTH_CM = 11


def _valid_item(item: Dict[str, Any]) -> bool:
    price = item.get("price")
    qty = item.get("quantity")
    return (
        isinstance(price, (int, float)) and not isinstance(price, bool) and math.isfinite(price) and price > 0
        and isinstance(qty, int) and not isinstance(qty, bool) and qty > 0
    )


def build_products(cart_items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    products = []
    for idx, item in enumerate(cart_items):
        kit_products = item.get("kitProducts") or []
        units = len(kit_products) * item["quantity"] if item.get("isKit") and kit_products else item["quantity"]
        product_id = str(item.get("id") or "").strip() or f"item_{idx}"
        products.append({
            "id": product_id,
            "width": DEFAULT_WIDTH_CM,
            "height": DEFAULT_HEIGHT_CM,
            "length": DEFAULT_LENGTH_CM,
            "weight": round(max(0.1, DEFAULT_WEIGHT_KG * units), 2),
            "insurance_value": round(item["price"] * item["quantity"], 2),
            "quantity": 1,
        })
    return products


def parse_quotes(raw: Any) -> List[Dict[str, Any]]:
    """Liste directe ou objet {data|purchase|quotes: [...]}; les offres sans prix (erreur transporteur) sont ignorées."""
    if isinstance(raw, list):
        results = raw
    elif isinstance(raw, dict):
        found = raw.get("data") or raw.get("purchase") or raw.get("quotes")
        results = found if isinstance(found, list) else []
    else:
        results = []

    quotes = []
    for r in results:
        if not isinstance(r, dict):
            continue
        try:
            price = float(r.get("price") or 0)
            delivery_time = int(r.get("delivery_time") or 0)
        except (TypeError, ValueError):
            continue
        if not math.isfinite(price) or price <= 0:
            continue
        company = r.get("company") or {}
        quotes.append({
            "id": str(r.get("id") or ""),
            "name": str(r.get("name") or "Entrega"),
            "price": round(price, 2),
            "deliveryTime": delivery_time,
            "deliveryRange": {"min": delivery_time, "max": delivery_time + 2},
            "company": {"id": int(company.get("id") or 0), "name": str(company.get("name") or "")},
        })
    return quotes


def select_options(quotes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not quotes:
        return []
    standard = dict(min(quotes, key=lambda q: q["price"]), type="standard")
    fastest = min(quotes, key=lambda q: q["deliveryTime"])
    options = [standard]
    if fastest["id"] != standard["id"]:
        options.append(dict(fastest, type="express"))
    return options


def quote(postal_code: str, cart_items: List[Dict[str, Any]], *, origin_cep: Optional[str] = None) -> Dict[str, Any]:
    cep = re.sub(r"\D", "", postal_code or "")
    if len(cep) != 8:
        raise InvalidCheckoutError("CEP deve ter 8 dígitos.")
    if not cart_items:
        raise InvalidCheckoutError("Sacola vazia. Adicione itens para calcular o frete.")
    valid = [i for i in cart_items if isinstance(i, dict) and _valid_item(i)]
    if not valid:
        raise InvalidCheckoutError("Itens da sacola inválidos para cálculo de frete.")

    subtotal = sum(i["price"] * i["quantity"] for i in valid)
    body = {
        "freeShippingThreshold": config.FREE_SHIPPING_THRESHOLD,
        "isFreeShipping": subtotal >= config.FREE_SHIPPING_THRESHOLD,
        "subtotal": subtotal,
    }
    raw = melhor_envio_client.calculate({
        "from": {"postal_code": origin_cep or config.melhor_envio_origin_cep()},
        "to": {"postal_code": cep},
        "products": build_products(valid),
        "options": {"receipt": False, "own_hand": False},
    })
    options = select_options(parse_quotes(raw))
    if not options:
        body.update(quotes=None, message="Nenhuma opção de frete disponível para este CEP.")
        return body
    body["quotes"] = options
    return body
