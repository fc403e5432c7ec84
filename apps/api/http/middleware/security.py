"""Security headers for JSON API responses."""

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


def add_security_headers(response):
    """Add security headers without overriding ones a handler already set."""

    for header, value in _SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)

    return response
