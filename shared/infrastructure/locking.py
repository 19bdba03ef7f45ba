"""Row locking helpers shared by the booking and payment stores."""

from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore


def lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic().

    Only the queried table is locked (``OF self``), so joined flight and
    user rows pulled in by ``select_related`` stay free for other bookings.
    """

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update(of=("self",))
    except NotSupportedError:
        return queryset
