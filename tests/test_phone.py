"""Pruebas de normalize_phone."""
import pytest

from sistema_puntos.core.phone import normalize_phone


@pytest.mark.parametrize("raw, expected", [
    ("1122334455", "5491122334455@s.whatsapp.net"),
    ("91122334455", "5491122334455@s.whatsapp.net"),
    ("5491122334455", "5491122334455@s.whatsapp.net"),
    ("+5491122334455", "5491122334455@s.whatsapp.net"),
    ("(011) 2233-4455", "549011" "22334455@s.whatsapp.net"),
    ("+54 9 11 2233-4455", "5491122334455@s.whatsapp.net"),
    ("11 2233 4455", "5491122334455@s.whatsapp.net"),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def test_already_addressed_number_is_unchanged():
    assert normalize_phone("5491122334455@s.whatsapp.net") == "5491122334455@s.whatsapp.net"
    assert normalize_phone("120363000000@g.us") == "120363000000@g.us"


def test_address_check_happens_after_stripping():
    assert normalize_phone(" 549 11 2233-4455@s.whatsapp.net ") == "5491122334455@s.whatsapp.net"


def test_overridable_country():
    assert normalize_phone("11987654321", country_code="55", mobile_prefix="") == "5511987654321@s.whatsapp.net"
