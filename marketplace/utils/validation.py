# Form validation rules. Each validator returns None when the value is
# valid, or the message key of the first rule it breaks.

import re
from typing import Any, Dict, Optional

NAME_MAX_LENGTH = 50
TITLE_MAX_LENGTH = 150
DESCRIPTION_MAX_LENGTH = 2000
SCHOOL_EMAIL_DOMAIN = "@uqam.ca"

NAME_PATTERN = re.compile(r"^[a-zA-ZÀ-ÿ\s-]+$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_SYMBOL_PATTERN = re.compile(r"[!@#$%^&*()_+\-=\[\]{}|;:,.<>?]")


def validate_name(name: Optional[str]) -> Optional[str]:
    if not name or not name.strip():
        return "validation.required"
    if len(name) > NAME_MAX_LENGTH:
        return "validation.nameMaxLength"
    if not NAME_PATTERN.match(name):
        return "validation.nameInvalidChars"
    return None


def validate_email(email: Optional[str]) -> Optional[str]:
    if not email or not email.strip():
        return "validation.required"
    if not EMAIL_PATTERN.match(email):
        return "validation.emailInvalid"
    if not email.lower().endswith(SCHOOL_EMAIL_DOMAIN):
        return "validation.emailUQAM"
    return None


def validate_password(password: Optional[str]) -> Optional[str]:
    if not password:
        return "validation.required"
    if len(password) < 8:
        return "validation.passwordMinLength"
    if not re.search(r"[a-z]", password):
        return "validation.passwordLowercase"
    if not re.search(r"[A-Z]", password):
        return "validation.passwordUppercase"
    if not re.search(r"[0-9]", password):
        return "validation.passwordDigit"
    if not PASSWORD_SYMBOL_PATTERN.search(password):
        return "validation.passwordSymbol"
    return None


def validate_password_match(password: Optional[str], confirm_password: Optional[str]) -> Optional[str]:
    if not confirm_password:
        return "validation.passwordConfirm"
    if password != confirm_password:
        return "validation.passwordMatch"
    return None


def validate_signup(form) -> Dict[str, str]:
    """Field name -> message key, for every field that fails."""
    errors = {
        "first_name": validate_name(form.first_name),
        "last_name": validate_name(form.last_name),
        "email": validate_email(form.email),
        "password": validate_password(form.password),
        "confirm_password": validate_password_match(form.password, form.confirm_password),
    }
    return {field: key for field, key in errors.items() if key}


def is_positive_price(price: Any) -> bool:
    try:
        return float(str(price).strip()) > 0
    except ValueError:
        return False


def validate_listing(fields: Dict[str, Any]) -> Optional[str]:
    """
    Check listing form fields. Only the fields present are checked, so the
    same rules apply to a full creation form and to a partial update.
    """
    if "category" in fields and not (fields["category"] or "").strip():
        return "Please select a category"
    if "condition" in fields and not (fields["condition"] or "").strip():
        return "Please select the item's condition"

    if "title" in fields:
        title = (fields["title"] or "").strip()
        if not title:
            return "Please enter a title"
        if len(title) > TITLE_MAX_LENGTH:
            return f"The title must not exceed {TITLE_MAX_LENGTH} characters"

    if len((fields.get("description") or "").strip()) > DESCRIPTION_MAX_LENGTH:
        return f"The description must not exceed {DESCRIPTION_MAX_LENGTH} characters"

    if "price" in fields and (fields["price"] is None or not is_positive_price(fields["price"])):
        return "Please enter a valid price (greater than 0)"

    if fields.get("contact_cell") and not (fields.get("phone") or fields.get("contact_phone") or "").strip():
        return "Please enter a phone number"
    if fields.get("contact_email") and not (fields.get("email") or fields.get("contact_email_value") or "").strip():
        return "Please enter an email address"
    if fields.get("contact_other") and not (fields.get("other_contact") or fields.get("contact_other_value") or "").strip():
        return "Please enter the contact information"

    return None
