"""Time-series containers, transforms, filters, custom functions and CSV/ULog loaders."""

__version__ = "0.1.0"

__all__ = [
    "plotdata",
    "transforms",
    "filters",
    "custom_function",
    "csv_loader",
    "sample_stream",
    "ulog_format",
    "ulog_parser",
]