"""
Core package for WealthMate providing the data model and cloud synchronization.

This package includes:

- :mod:`WealthMate.core.model` – The household finance snapshot and its JSON representation.
- :mod:`WealthMate.core.local` – On-device cache of the snapshot and the sync secrets.
- :mod:`WealthMate.core.gist` – GitHub Gist integration used as the cloud store.
- :mod:`WealthMate.core.sync` – Last-writer-wins reconciliation of the local and cloud copies.
- :mod:`WealthMate.core.session` – Application root wiring the stores and the coordinator together.
"""
