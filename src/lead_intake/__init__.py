"""Lead intake API: buyer leads with CSV import/export and change history."""

__version__ = "0.1.0"
