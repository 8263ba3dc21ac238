"""Built-in credential-stamping clients, one sub-package per challenge scheme.

* :class:`~dgauth.plugins.basic.BasicAuthClient` -- ``Basic`` (:rfc:`7617`).
* :class:`~dgauth.plugins.digest.DigestAuthClient` -- ``Digest`` (:rfc:`7616`).

Clients are registered with :class:`~dgauth.auth.manager.AuthManager`; see
:func:`~dgauth.auth.manager.create_default_manager`.
"""
