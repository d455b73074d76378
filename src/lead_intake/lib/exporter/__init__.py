"""Exporter library — public API for buyer lead export."""

from lead_intake.lib.exporter.csv_writer import render_csv

__all__ = ["render_csv"]
