"""
Endpoint address construction for the identity service.
"""

from enum import Enum
from typing import Optional, Union

DEFAULT_PORT = 5000


class SslPolicy(str, Enum):
    """
    Transport-security policies a handle can be configured with.

    NONE / NON_SSL: plain HTTP
    SSL: HTTPS without peer verification
    SSL_WITH_VALIDATION: HTTPS with peer verification and optional CA material
    """

    NONE = "none"
    NON_SSL = "non-ssl"
    SSL = "ssl"
    SSL_WITH_VALIDATION = "ssl-with-validation"


SECURE_SCHEMES = {SslPolicy.SSL.value, SslPolicy.SSL_WITH_VALIDATION.value, "https"}


def policy_value(ssl_policy: Optional[Union[SslPolicy, str]]) -> Optional[str]:
    """Plain string form of a policy; unknown strings are returned unchanged."""
    return ssl_policy.value if isinstance(ssl_policy, SslPolicy) else ssl_policy


def resolve_address(
    host: str,
    port: int = DEFAULT_PORT,
    ssl_policy: Optional[Union[SslPolicy, str]] = SslPolicy.NON_SSL,
) -> str:
    """
    Build the base URL of the identity endpoint.

    ``https`` is used for the ``ssl`` and ``ssl-with-validation`` policies
    (the bare scheme name ``https`` is accepted too); anything else, including
    no policy at all, yields ``http``. IPv6 literals are bracketed and any
    other host value is rendered with ``str()``.

    Examples:
        >>> resolve_address("address")
        'http://address:5000'
        >>> resolve_address("::1", 5000, "ssl")
        'https://[::1]:5000'
    """
    scheme = "https" if policy_value(ssl_policy) in SECURE_SCHEMES else "http"
    host = str(host)
    if ":" in host:
        host = f"[{host}]"
    return f"{scheme}://{host}:{port}"
