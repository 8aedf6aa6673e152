"""Command implementations exposed through :mod:`gstbill.cli`."""
