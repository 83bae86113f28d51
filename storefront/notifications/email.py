"""
E-mails transactionnels (Resend, API HTTP).
- Remetente: EMAIL_FROM; gabarit HTML Jinja2 (autoescape) dans notifications/templates.
- Montants en reais (jamais en centavos).
"""
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from storefront import config

logger = logging.getLogger(__name__)

_env = Environment(
    loader=FileSystemLoader(str(Path(__file__).resolve().parent / "templates")),
    autoescape=select_autoescape(["html"]),
)

_MONTHS = (
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
)


def format_brl(value: float) -> str:
    """299.9 -> 'R$ 299,90'; 1234.5 -> 'R$ 1.234,50'."""
    s = f"{value:,.2f}"
    return "R$ " + s.replace(",", "_").replace(".", ",").replace("_", ".")


def format_date(value: Union[str, datetime, None]) -> str:
    if not value:
        return ""
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return f"{dt.day:02d} de {_MONTHS[dt.month - 1]} de {dt.year} {dt.hour:02d}:{dt.minute:02d}"


_env.filters["brl"] = format_brl


@dataclass
class OrderConfirmation:
    customer_email: str
    order_id: str
    order_date: Union[str, datetime, None]
    total_amount: float
    customer_name: Optional[str] = None
    status: str = "Pago"
    items: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def short_id(self) -> str:
        return self.order_id[:8].upper()

    @property
    def order_url(self) -> str:
        return f"{config.SITE_URL}/checkout/success?order_id={self.order_id}"


def render_order_confirmation(params: OrderConfirmation) -> str:
    template = _env.get_template("order_confirmation.html")
    return template.render(
        order=params,
        order_date=format_date(params.order_date),
        site_url=config.SITE_URL,
    )


def _http_client() -> httpx.Client:
    """Point d'injection (tests: monkeypatch avec httpx.MockTransport)."""
    return httpx.Client(timeout=10)


def send_order_confirmation(params: OrderConfirmation) -> Dict[str, Any]:
    """
    Envoie la confirmation de commande.
    Retour: {"success": bool, "messageId"?: str, "error"?: str}; n'échoue jamais pour une clé absente.
    """
    key = config.resend_api_key()
    if not key:
        logger.warning("email: RESEND_API_KEY non configurée, e-mail non envoyé order_id=%s", params.order_id)
        return {"success": False, "error": "RESEND_API_KEY não configurada."}

    subject = "Pagamento confirmado" if params.status == "Pago" else "Pedido recebido"
    body = {
        "from": config.EMAIL_FROM,
        "to": [params.customer_email],
        "subject": f"{subject} #{params.short_id} - VIOS Labs",
        "html": render_order_confirmation(params),
    }
    with _http_client() as client:
        resp = client.post(config.RESEND_API_URL, json=body, headers={"Authorization": f"Bearer {key}"})
    if 200 <= resp.status_code < 300:
        message_id = (resp.json() or {}).get("id")
        logger.info("email.order_confirmation sent order_id=%s message_id=%s", params.order_id, message_id)
        return {"success": True, "messageId": message_id}
    logger.error("email.order_confirmation failed status=%s body=%s", resp.status_code, resp.text)
    return {"success": False, "error": f"Resend error {resp.status_code}"}
