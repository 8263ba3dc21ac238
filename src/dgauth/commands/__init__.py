"""Built-in CLI sub-commands for dgauth.

* :mod:`~dgauth.commands.init` -- create a profile for an API.
* :mod:`~dgauth.commands.request` -- send a request, answering
  authentication challenges.
* :mod:`~dgauth.commands.auth` -- sign in, sign out, check and forget the
  session.
* :mod:`~dgauth.commands.profile` -- list, inspect and select profiles.

Groups export a :class:`typer.Typer` sub-application; single commands are
plain callbacks registered on the root app.
"""
