from coinwatch.utils.formatting import format_change, format_large_number, format_number

__all__ = ["format_change", "format_large_number", "format_number"]
