from .csv_writer import REPORT_COLUMNS, write_report

__all__ = ["REPORT_COLUMNS", "write_report"]
