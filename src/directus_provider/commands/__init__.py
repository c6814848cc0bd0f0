"""Built-in CLI sub-commands for directus-provider.

* :mod:`~directus_provider.commands.auth` -- inspect and change the stored
  login (``status``, ``login``, ``logout``, ``whoami``).
* :mod:`~directus_provider.commands.config` -- view and modify settings.

Each module exports a :class:`typer.Typer` sub-application registered on
the root app in :mod:`directus_provider.app`.
"""
