"""cellcalc -- spreadsheet cell formula evaluation."""

__version__ = "0.1.0"
