import base64
from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_M

PNG_DATA_URI_PREFIX = "data:image/png;base64,"


def render_pix_qr(copy_paste_code: str, *, module_px: int = 8, quiet_zone: int = 4) -> str:
    """
    QR Code PNG (data URI) d'un code PIX copia-e-cola.
    Utilisé quand Pagar.me ne renvoie pas d'image (qr_code_url absent).
    La version est choisie automatiquement: un EMV fait plusieurs centaines de caractères.
    """
    code = (copy_paste_code or "").strip()
    if not code:
        raise ValueError("código PIX vazio")

    qr = qrcode.QRCode(version=None, error_correction=ERROR_CORRECT_M, box_size=module_px, border=quiet_zone)
    qr.add_data(code)
    qr.make(fit=True)

    png = BytesIO()
    qr.make_image(fill_color="black", back_color="white").save(png, format="PNG")
    return PNG_DATA_URI_PREFIX + base64.b64encode(png.getvalue()).decode("ascii")
