"""Quapp project tooling.

Two command-line tools live in this package:

* ``create-quapp`` (:mod:`quapp.create`) scaffolds a new project from a
  remote template.
* ``quapp`` (:mod:`quapp.runner`) serves a project on the LAN during
  development and packages a production build into ``dist.qpp``.
"""

__version__ = "1.2.0"
