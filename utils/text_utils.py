"""
Text utilities for normalizing free-text order fields.

Order rows come from several ingestion paths (webhooks, manual entry,
imports), so the same value can arrive with any case or padding.
"""

from typing import Any, Optional

from models.order import DEFAULT_STORE, DeliveryMethod, Store


def clean_text(value: Any) -> Optional[str]:
    """
    Trim a raw value to a non-empty string.

    - None → None
    - "  " → None
    - 12345 → "12345"

    Args:
        value: Raw row value of any type

    Returns:
        Stripped string, or None if nothing is left
    """
    if value is None:
        return None

    text = str(value).strip()

    if not text:
        return None

    return text


def first_non_empty(*values: Any) -> Optional[str]:
    """Return the first value that is non-empty after cleaning."""
    for value in values:
        text = clean_text(value)
        if text is not None:
            return text
    return None


def normalize_delivery_method(value: Any) -> DeliveryMethod:
    """
    Map free-text delivery method to Delivery / Pickup / unknown.

    - " DELIVERY " → Delivery
    - "pickup" → Pickup
    - "courier", "", None → unknown (never guessed)
    """
    text = clean_text(value)
    if text is None:
        return DeliveryMethod.UNKNOWN

    normalized = text.lower()
    if normalized == "delivery":
        return DeliveryMethod.DELIVERY
    if normalized == "pickup":
        return DeliveryMethod.PICKUP
    return DeliveryMethod.UNKNOWN


def normalize_store(value: Any) -> Store:
    """
    Validate a store identifier.

    Case and padding are ignored; anything unrecognized maps to DEFAULT_STORE.
    """
    text = clean_text(value)
    if text is None:
        return DEFAULT_STORE

    try:
        return Store(text.lower())
    except ValueError:
        return DEFAULT_STORE
