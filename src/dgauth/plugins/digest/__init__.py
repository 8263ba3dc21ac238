"""HTTP Digest authentication client (:rfc:`7616`).

See Also:
    :class:`~dgauth.plugins.digest.plugin.DigestAuthClient`
"""

from dgauth.plugins.digest.plugin import DigestAuthClient

__all__ = ["DigestAuthClient"]
