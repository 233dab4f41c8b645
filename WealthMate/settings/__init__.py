"""
Settings package.

- :mod:`WealthMate.settings.lib` – Application name and the on-disk locations of the snapshot and secrets.
"""
