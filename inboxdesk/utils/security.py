"""Output sanitisation helpers."""

CSV_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r", "\n")


def sanitize_csv_field(value) -> str:
    """
    Sanitize a CSV field value to prevent CSV injection attacks.

    Spreadsheet applications interpret cells starting with =, +, -, @ as
    formulas; such values are prefixed with a single quote.

    Example:
        >>> sanitize_csv_field("=SUM(A1:A10)")
        "'=SUM(A1:A10)"
    """
    value_str = str(value) if value is not None else ""
    if value_str and value_str.startswith(CSV_FORMULA_PREFIXES):
        value_str = "'" + value_str
    return value_str
