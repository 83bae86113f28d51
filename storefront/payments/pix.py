"""
Données PIX (QR Code / copia-e-cola) dérivées de la réponse Pagar.me.
- PixPayment: éphémère, jamais persisté; repr masqué pour ne pas loguer le code complet.
- extract_pix_from_charge: la passerelle utilise plusieurs noms de champs selon les versions.
- ensure_fresh_pix: un payload expiré n'est jamais réutilisé, on en demande un nouveau.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from storefront import config

# Brasília sans horaire d'été depuis 2019
SAO_PAULO_FIXED = timezone(timedelta(hours=-3))


@dataclass(frozen=True)
class PixPayment:
    qr_code: Optional[str]
    qr_code_url: Optional[str]
    copy_paste_code: Optional[str]
    created_at: datetime
    expires_at: datetime

    @classmethod
    def issued_at(cls, created_at: datetime, *, qr_code=None, qr_code_url=None, copy_paste_code=None) -> "PixPayment":
        return cls(
            qr_code=qr_code,
            qr_code_url=qr_code_url,
            copy_paste_code=copy_paste_code,
            created_at=created_at,
            expires_at=created_at + timedelta(seconds=config.PIX_EXPIRATION_SECONDS),
        )

    @property
    def has_payload(self) -> bool:
        return bool(self.qr_code or self.qr_code_url or self.copy_paste_code)

    def is_valid(self, now: datetime) -> bool:
        """Invalide pour affichage à partir de expires_at (inclus)."""
        return now < self.expires_at

    def seconds_remaining(self, now: datetime) -> int:
        return max(0, int((self.expires_at - now).total_seconds()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "qr_code": self.qr_code,
            "qr_code_url": self.qr_code_url,
            "pix_copy_paste": self.copy_paste_code,
            "expires_at": self.expires_at.isoformat(),
            "expires_in": config.PIX_EXPIRATION_SECONDS,
        }

    def __repr__(self) -> str:
        code = self.copy_paste_code or ""
        masked = f"{code[:6]}…({len(code)} chars)" if code else None
        return f"PixPayment(copy_paste_code={masked!r}, has_qr={bool(self.qr_code or self.qr_code_url)}, expires_at={self.expires_at.isoformat()})"

    __str__ = __repr__


def _pick_string(obj: Dict[str, Any], *keys: str) -> Optional[str]:
    for k in keys:
        v = obj.get(k)
        if isinstance(v, str) and v.strip():
            return v
    return None


def _is_emv(value: str) -> bool:
    """Code EMV (copia-e-cola) et non image base64."""
    return value.strip().startswith("0002")


def extract_pix_from_transaction(tx: Optional[Dict[str, Any]]) -> Dict[str, Optional[str]]:
    if not tx or not isinstance(tx, dict):
        return {"qr_code": None, "qr_code_url": None, "pix_copy_paste": None}
    raw_qr = _pick_string(tx, "qr_code", "qr_code_base64", "pix_qr_code", "qr_code_image")
    qr_code = raw_qr if raw_qr and not _is_emv(raw_qr) else None
    qr_code_url = _pick_string(tx, "qr_code_url", "qr_code_link", "pix_qr_code_url", "link")
    copy_paste = _pick_string(tx, "emv", "qr_code_text", "pix_copy_paste", "copy_paste")
    if not copy_paste and raw_qr and _is_emv(raw_qr):
        copy_paste = raw_qr
    return {"qr_code": qr_code, "qr_code_url": qr_code_url, "pix_copy_paste": copy_paste}


def extract_pix_from_charge(charge: Optional[Dict[str, Any]]) -> Dict[str, Optional[str]]:
    """last_transaction d'abord, puis champs au niveau de la charge, puis objet 'pix' imbriqué."""
    if not charge or not isinstance(charge, dict):
        return {"qr_code": None, "qr_code_url": None, "pix_copy_paste": None}
    from_tx = extract_pix_from_transaction(charge.get("last_transaction"))
    qr_code = from_tx["qr_code"] or _pick_string(charge, "qr_code", "qr_code_base64")
    qr_code_url = from_tx["qr_code_url"] or _pick_string(charge, "qr_code_url")
    copy_paste = from_tx["pix_copy_paste"] or _pick_string(charge, "emv", "qr_code_text")
    nested = charge.get("pix")
    if isinstance(nested, dict):
        from_pix = extract_pix_from_transaction(nested)
        qr_code = qr_code or from_pix["qr_code"]
        qr_code_url = qr_code_url or from_pix["qr_code_url"]
        copy_paste = copy_paste or from_pix["pix_copy_paste"]
    return {"qr_code": qr_code, "qr_code_url": qr_code_url, "pix_copy_paste": copy_paste}


def ensure_fresh_pix(
    current: Optional[PixPayment],
    now: datetime,
    regenerate: Callable[[], PixPayment],
) -> PixPayment:
    """Retourne le payload courant s'il est encore valide, sinon en demande un nouveau."""
    if current is not None and current.has_payload and current.is_valid(now):
        return current
    return regenerate()


def format_expiration(expires_at: datetime) -> str:
    """Date/heure d'expiration au fuseau de São Paulo (affichage)."""
    try:
        tz = ZoneInfo(config.PIX_TIMEZONE)
    except ZoneInfoNotFoundError:
        # base tzdata absente (Windows sans le paquet tzdata)
        tz = SAO_PAULO_FIXED
    return expires_at.astimezone(tz).strftime("%d/%m/%Y %H:%M:%S")
