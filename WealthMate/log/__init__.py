"""
Logging subsystem.

Modules:

- :mod:`WealthMate.log.log` – Root logger setup, in-memory TankHandler and the Qt message bridge.
"""
