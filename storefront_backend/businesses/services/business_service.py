# businesses/services/business_service.py

from __future__ import annotations

import re
from urllib.parse import quote

from businesses.models import Business
from common.errors import NotFoundError

DEFAULT_CONTACT_MESSAGE = "Hello, I need help with my order."
DEFAULT_EMAIL_SUBJECT = "Customer Inquiry"


def get_default_business() -> Business:
    """The storefront runs as a single business: the oldest active one."""
    business = Business.objects.filter(is_active=True).order_by("created_at").first()
    if business is None:
        raise NotFoundError("Business")
    return business


def get_business_by_id(business_id) -> Business:
    business = Business.objects.filter(id=business_id).first()
    if business is None:
        raise NotFoundError("Business")
    return business


def business_contact_links(business: Business, *, message: str = DEFAULT_CONTACT_MESSAGE) -> dict:
    """
    Quick-contact links for the storefront widget.

    WhatsApp uses the dedicated number, else the contact phone, with spaces,
    dashes and "+" stripped. tel: links keep "+" but drop whitespace.
    """
    links = {"whatsapp": None, "email": None, "phone": None}

    wa_number = re.sub(r"[\s\-+]", "", business.whatsapp_number or business.contact_phone or "")
    if wa_number:
        links["whatsapp"] = f"https://wa.me/{wa_number}?text={quote(message, safe='')}"

    if business.contact_email:
        subject = quote(DEFAULT_EMAIL_SUBJECT, safe="")
        body = quote(message, safe="")
        links["email"] = f"mailto:{business.contact_email}?subject={subject}&body={body}"

    phone = re.sub(r"\s", "", business.contact_phone or "")
    if phone:
        links["phone"] = f"tel:{phone}"

    return links
