"""HTTP Basic authentication client.

Encodes a ``username:password`` pair using Base64 and sends it as an
``Authorization: Basic`` header per :rfc:`7617`.

See Also:
    :class:`~dgauth.plugins.basic.plugin.BasicAuthClient`
"""

from dgauth.plugins.basic.plugin import BasicAuthClient

__all__ = ["BasicAuthClient"]
