"""CLI layer — argument parsing, console output, and error boundary.

This package is an outermost layer of the application, alongside
``web``.  It may import from ``core``, ``infra`` and ``web``, but no
other layer may import from ``cli`` except for the shared Rich console.
"""
