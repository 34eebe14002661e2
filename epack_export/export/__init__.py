"""ePack Export — Output Layer"""

from epack_export.export.csv_writer import csv_escape, export_filename, render_csv, write_csv

__all__ = ["csv_escape", "export_filename", "render_csv", "write_csv"]
