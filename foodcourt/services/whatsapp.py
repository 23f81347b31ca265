import re
from urllib.parse import quote

WHATSAPP_BASE_URL = "https://wa.me"


def format_idr(amount: int) -> str:
    """Format an integer rupiah amount as ``Rp 15.000``."""
    return "Rp " + f"{amount:,}".replace(",", ".")


def normalize_whatsapp_number(phone_number: str) -> str:
    digits = re.sub(r"\D", "", phone_number)
    if digits.startswith("0"):
        digits = "62" + digits[1:]
    return digits


def whatsapp_link(phone_number: str, message: str | None = None) -> str:
    url = f"{WHATSAPP_BASE_URL}/{normalize_whatsapp_number(phone_number)}"
    if message:
        url += f"?text={quote(message)}"
    return url


def merchant_inquiry_message(merchant_name: str) -> str:
    return f"Halo {merchant_name}, saya ingin bertanya tentang menu Anda."


def order_status_message(merchant_name: str, order_id: str, total_amount: int) -> str:
    return (
        f"Halo {merchant_name}, saya ingin menanyakan status pesanan "
        f"#{order_id[-8:].upper()} dengan total {format_idr(total_amount)}."
    )
