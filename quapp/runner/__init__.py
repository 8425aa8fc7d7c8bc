"""Quapp project runner (``quapp``).

Modules:
    cli    - ``quapp`` dispatcher; runs each subcommand as its own process
    server - ``quapp serve``: LAN dev server with port fallback and QR code
    build  - ``quapp build``: production build packaged as ``dist.qpp``

The subcommand modules are executed with ``python -m`` and are therefore not
imported here.
"""
