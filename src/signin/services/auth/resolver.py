"""Mapping from a vendor subject to the user column that stores it."""

from src.signin.services.auth.hooks import HasVendorSubjects
from src.signin.services.auth.models import Vendor
from src.signin.services.database.models import UserColumn, UserFilter

_SUBJECT_COLUMNS = {
    Vendor.APPLE: UserColumn.APPLE_SUBJECT,
    Vendor.GOOGLE: UserColumn.GOOGLE_SUBJECT,
}


def _vendor(vendor: Vendor | str) -> Vendor:
    try:
        return Vendor(vendor)
    except ValueError:
        raise ValueError(f"Unsupported identity vendor: {vendor!r}") from None


def subject_filter(vendor: Vendor | str, subject: str) -> UserFilter:
    """
    Build the user lookup for a vendor subject.

    Example:
        >>> subject_filter(Vendor.APPLE, "u1")
        UserFilter(column=<UserColumn.APPLE_SUBJECT: 'apple_subject'>, value='u1')
    """
    return UserFilter(column=_SUBJECT_COLUMNS[_vendor(vendor)], value=subject)


def subject_fields(vendor: Vendor | str, subject: str) -> tuple[str | None, str | None]:
    """Return the ``(apple_subject, google_subject)`` pair for a new user."""
    if _vendor(vendor) is Vendor.APPLE:
        return subject, None
    return None, subject


def subject_for(user: HasVendorSubjects, vendor: Vendor | str) -> str | None:
    """Read the subject a user has linked for ``vendor``."""
    if _vendor(vendor) is Vendor.APPLE:
        return user.apple_subject
    return user.google_subject
