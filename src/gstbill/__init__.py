"""GST billing and inventory for a pharmaceutical distributor.

The invoice arithmetic lives in :mod:`gstbill.calculator`; the form
workflow in :mod:`gstbill.invoices`; persistence in :mod:`gstbill.storage`.
"""

__version__ = "1.0.0"

__all__ = [
    "calculator",
    "catalog",
    "cli",
    "commands",
    "config",
    "errors",
    "export",
    "importer",
    "invoices",
    "logging",
    "parties",
    "reporting",
    "settings",
    "storage",
    "tax_table",
    "utils",
]
