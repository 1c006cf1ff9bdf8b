"""sheet-hasher — Add one-way SHA-256 digest columns to spreadsheets."""

__version__ = "0.1.0"

DERIVED_SUFFIX: str = "密文"
OUTPUT_SUFFIX: str = "_encrypted"
OUTPUT_SHEET_NAME: str = "Encrypted Data"
BATCH_SIZE: int = 10
SUPPORTED_EXTENSIONS: tuple[str, ...] = (".xlsx", ".xls")
