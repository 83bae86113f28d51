from datetime import datetime, timedelta, timezone

from storefront.payments.pix import (
    PixPayment,
    ensure_fresh_pix,
    extract_pix_from_charge,
    format_expiration,
)

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
EMV = "00020126580014br.gov.bcb.pix0136abcdef" + "9" * 40


def _pix(created_at=T0, code=EMV):
    return PixPayment.issued_at(created_at, qr_code="data:image/png;base64,AAA", copy_paste_code=code)


def test_pix_is_valid_until_expiration_exclusive():
    pix = _pix()
    assert pix.expires_at == T0 + timedelta(seconds=3600)
    assert pix.is_valid(T0 + timedelta(seconds=3599))
    assert not pix.is_valid(T0 + timedelta(seconds=3600))
    assert pix.seconds_remaining(T0 + timedelta(seconds=3000)) == 600
    assert pix.seconds_remaining(T0 + timedelta(hours=2)) == 0


def test_ensure_fresh_keeps_valid_payload_and_regenerates_expired():
    current = _pix()
    calls = []

    def regenerate():
        calls.append(1)
        return _pix(created_at=T0 + timedelta(hours=1), code=EMV + "1")

    assert ensure_fresh_pix(current, T0 + timedelta(minutes=10), regenerate) is current
    assert calls == []

    fresh = ensure_fresh_pix(current, T0 + timedelta(seconds=3600), regenerate)
    assert calls == [1]
    assert fresh.copy_paste_code.endswith("1")
    assert fresh.is_valid(T0 + timedelta(seconds=3600))


def test_ensure_fresh_regenerates_when_payload_empty():
    empty = PixPayment.issued_at(T0)
    assert ensure_fresh_pix(empty, T0, lambda: _pix()).has_payload


def test_repr_never_contains_full_copy_paste_code():
    pix = _pix()
    text = repr(pix)
    assert EMV not in text
    assert EMV[:6] in text
    assert f"({len(EMV)} chars)" in text
    assert str(pix) == text


def test_extract_from_last_transaction_prefers_image_and_emv():
    charge = {
        "id": "ch_1",
        "last_transaction": {"qr_code": EMV, "qr_code_url": "https://pix/qr.png"},
    }
    pix = extract_pix_from_charge(charge)
    assert pix == {"qr_code": None, "qr_code_url": "https://pix/qr.png", "pix_copy_paste": EMV}


def test_extract_falls_back_to_charge_and_nested_pix():
    charge = {"qr_code_base64": "iVBORw0KGgo", "pix": {"emv": EMV}}
    pix = extract_pix_from_charge(charge)
    assert pix["qr_code"] == "iVBORw0KGgo"
    assert pix["pix_copy_paste"] == EMV
    assert extract_pix_from_charge(None)["qr_code"] is None


def test_to_dict_and_local_expiration_format():
    body = _pix().to_dict()
    assert body["expires_in"] == 3600
    assert body["pix_copy_paste"] == EMV
    assert body["expires_at"].startswith("2025-03-01T13:00:00")
    # 13:00 UTC -> 10:00 em São Paulo
    assert format_expiration(T0 + timedelta(hours=1)) == "01/03/2025 10:00:00"


def test_local_expiration_without_tzdata_uses_fixed_offset(monkeypatch):
    from zoneinfo import ZoneInfoNotFoundError

    def missing(key):
        raise ZoneInfoNotFoundError(key)

    monkeypatch.setattr("storefront.payments.pix.ZoneInfo", missing)
    assert format_expiration(T0 + timedelta(hours=1)) == "01/03/2025 10:00:00"
