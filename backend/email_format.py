"""
Email address format checks.
"""

import re

# Practical RFC 5322 subset: dot-atom local part, LDH labels, alphabetic TLD
LOCAL_PART_RE = re.compile(r"^[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+(\.[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+)*$")
DOMAIN_LABEL_RE = re.compile(r"^[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")
TLD_RE = re.compile(r"^([A-Za-z]{2,63}|xn--[A-Za-z0-9-]{1,59})$")

MAX_EMAIL_LENGTH = 254
MAX_LOCAL_PART_LENGTH = 64
MAX_DOMAIN_LENGTH = 253


def split_email(email: str) -> tuple[str, str]:
    """Split an address at the last '@' into (local_part, domain)."""
    local_part, _, domain = email.rpartition("@")
    return local_part, domain


def is_valid_email_format(email: object) -> bool:
    """
    Check whether a value is a syntactically valid email address.

    Quoted local parts, IP-literal domains and comments are not accepted.
    """
    if not isinstance(email, str) or not email or "@" not in email:
        return False
    if len(email) > MAX_EMAIL_LENGTH or email != email.strip():
        return False

    local_part, domain = split_email(email)
    if not local_part or len(local_part) > MAX_LOCAL_PART_LENGTH:
        return False
    if not LOCAL_PART_RE.match(local_part):
        return False

    if not domain or len(domain) > MAX_DOMAIN_LENGTH:
        return False
    labels = domain.split(".")
    if len(labels) < 2:
        return False
    if not all(DOMAIN_LABEL_RE.match(label) for label in labels):
        return False
    return TLD_RE.match(labels[-1]) is not None
