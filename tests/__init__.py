"""
Test suite for atelier application.

Unit tests live under ``tests/unit`` and mirror the ``atelier`` package layout.
"""
