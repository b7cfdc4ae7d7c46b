"""
Disposable email provider detection.
The domain list is built on first use so importing the module stays cheap.
"""

import threading

# Well-known throwaway providers; extend as needed
_DISPOSABLE_PROVIDERS = (
    "10minutemail.com",
    "20minutemail.com",
    "33mail.com",
    "discard.email",
    "dispostable.com",
    "emailondeck.com",
    "fakeinbox.com",
    "getairmail.com",
    "getnada.com",
    "guerrillamail.biz",
    "guerrillamail.com",
    "guerrillamail.de",
    "guerrillamail.net",
    "guerrillamail.org",
    "guerrillamailblock.com",
    "harakirimail.com",
    "incognitomail.org",
    "mailcatch.com",
    "maildrop.cc",
    "mailinator.com",
    "mailinator.net",
    "mailnesia.com",
    "mintemail.com",
    "moakt.com",
    "mohmal.com",
    "mytemp.email",
    "nada.email",
    "sharklasers.com",
    "spamgourmet.com",
    "spambox.us",
    "temp-mail.org",
    "tempail.com",
    "tempmail.com",
    "tempmail.net",
    "tempmailo.com",
    "tempr.email",
    "throwawaymail.com",
    "trashmail.com",
    "trashmail.de",
    "trashmail.net",
    "yopmail.com",
    "yopmail.fr",
    "yopmail.net",
)

_disposable_domains: frozenset[str] | None = None
_load_lock = threading.Lock()


def _load_disposable_domains() -> frozenset[str]:
    global _disposable_domains
    if _disposable_domains is not None:
        return _disposable_domains

    with _load_lock:
        if _disposable_domains is None:
            _disposable_domains = frozenset(domain.lower() for domain in _DISPOSABLE_PROVIDERS)
    return _disposable_domains


def is_disposable_domain(domain: object) -> bool:
    """
    Check whether a domain belongs to a known disposable email provider.

    Case-insensitive. Returns False for empty or non-string input instead of raising.
    """
    if not domain or not isinstance(domain, str):
        return False
    return domain.strip().lower().rstrip(".") in _load_disposable_domains()


def preload_disposable_domains() -> None:
    """Build the domain set ahead of the first lookup."""
    _load_disposable_domains()


def are_disposable_domains_loaded() -> bool:
    """Return True once the domain set has been built."""
    return _disposable_domains is not None
