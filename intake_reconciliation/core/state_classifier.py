"""
Display state classification for merged items.

The rule order below is load-bearing: a confirmed form always decides the
state from its status, so a linked appointment is never shown as a mere
suggestion, and status checks never fire without a confirmed form id.
"""

from typing import Any, Optional

from .data_models import (
    CalendarItem,
    FormOnlyItem,
    FormStatus,
    ItemState,
    ItemType,
    MergedItem
)


def classify_fields(item_type: Any,
                    form_id: Optional[str],
                    form_status: Any,
                    has_suggestion: bool = False) -> ItemState:
    """
    Classify an item from its raw fields.

    Priority (first match wins):
    1. confirmed form + processed -> processed
    2. confirmed form + submitted -> received
    3. confirmed form + draft     -> invited
    4. calendar, no form, suggestion -> suggested
    5. calendar, no form          -> awaiting_form
    6. form-only + draft          -> draft
    7. anything else              -> received

    Args:
        item_type: ItemType or its string value
        form_id: Confirmed form id (empty/None when there is none)
        form_status: FormStatus or its string value
        has_suggestion: Whether a suggested candidate is attached
    """
    if isinstance(item_type, str):
        try:
            item_type = ItemType(item_type)
        except ValueError:
            item_type = None
    status = FormStatus.parse(form_status)

    if form_id and status == FormStatus.PROCESSED:
        return ItemState.PROCESSED
    if form_id and status == FormStatus.SUBMITTED:
        return ItemState.RECEIVED
    if form_id and status == FormStatus.DRAFT:
        return ItemState.INVITED
    if item_type == ItemType.CALENDAR and not form_id and has_suggestion:
        return ItemState.SUGGESTED
    if item_type == ItemType.CALENDAR and not form_id:
        return ItemState.AWAITING_FORM
    if item_type == ItemType.FORM_ONLY and status == FormStatus.DRAFT:
        return ItemState.DRAFT
    return ItemState.RECEIVED


def classify_item(item: MergedItem) -> ItemState:
    """
    Classify a merged item.

    A form-only item has no confirmed form: it is the form itself, waiting
    for an appointment, so only its status is considered.
    """
    if isinstance(item, CalendarItem):
        form = item.confirmed_form
        return classify_fields(
            ItemType.CALENDAR,
            form.id if form else None,
            form.status if form else None,
            item.suggestion is not None
        )
    if isinstance(item, FormOnlyItem):
        return classify_fields(ItemType.FORM_ONLY, None, item.form.status)
    raise TypeError(f"Unsupported merged item: {type(item).__name__}")


def apply_states(items):
    """Set the state of every item in place and return the list."""
    for item in items:
        item.state = classify_item(item)
    return items
