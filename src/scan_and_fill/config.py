"""Configuration: paths, OCR settings, classifier thresholds."""

import os
from decimal import Decimal
from pathlib import Path

# Base directory for caches and project definitions
DATA_DIR = Path(os.environ.get("SCANFILL_DATA_DIR", Path.cwd() / "data"))
PROJECTS_PATH = DATA_DIR / "projects.json"
PDF_CACHE_DIR = DATA_DIR / "pdf-cache"
EXTRACTION_CACHE_DIR = DATA_DIR / "extraction-cache"

LOG_LEVEL = os.environ.get("SCANFILL_LOG_LEVEL", "INFO").upper()

# Embedded text shorter than this is treated as a scanned document
MIN_TEXT_LENGTH = int(os.environ.get("SCANFILL_MIN_TEXT_LENGTH", "100"))

# OCR (Tesseract language codes joined with "+")
OCR_DPI = int(os.environ.get("SCANFILL_OCR_DPI", "300"))
OCR_LANGUAGES = os.environ.get("SCANFILL_OCR_LANGUAGES", "fra+eng")
OCR_TIMEOUT = int(os.environ.get("SCANFILL_OCR_TIMEOUT", "120"))

# Tie-break thresholds for the amount classifier (empirically tuned)
SUM_TOLERANCE = Decimal(os.environ.get("SCANFILL_SUM_TOLERANCE", "0.05"))
SMALL_AMOUNT = Decimal(os.environ.get("SCANFILL_SMALL_AMOUNT", "5"))
LARGE_AMOUNT = Decimal(os.environ.get("SCANFILL_LARGE_AMOUNT", "10"))
MIN_RATIO = Decimal(os.environ.get("SCANFILL_MIN_RATIO", "1.5"))
MAX_RATIO = Decimal(os.environ.get("SCANFILL_MAX_RATIO", "10"))

# Supported file extensions
SUPPORTED_EXTENSIONS = {".pdf"}
