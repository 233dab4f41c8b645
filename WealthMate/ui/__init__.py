"""
UI integration points.

Widgets are not part of this package. :mod:`WealthMate.ui.actions` holds the
application-wide signals a user interface subscribes to.
"""
