"""
Application configuration loaded from config.ini.

Example config.ini:

    [Ticketing]
    DuplicateWindowSeconds = 3
    EntryStatus = CREATED
    CompletionStatus = PROCESSING

    [Labels]
    OutputDirectory = labels
    Dpi = 203
    WidthMm = 29
    HeightMm = 90

Missing files, sections or keys fall back to the defaults below.
"""

import configparser
from dataclasses import dataclass
from pathlib import Path

from exceptions import ValidationError
from order_models import OrderStatus
from logger import get_logger

logger = get_logger(__name__)

# Duplicate-suppression window for repeated reads of the same tag
DEFAULT_DUPLICATE_WINDOW_SECONDS = 3.0

# 203 DPI is the standard resolution of entry-level thermal label printers
DEFAULT_LABEL_DPI = 203

# 29 x 90 mm portrait tag, the roll used on the garment tag printer
DEFAULT_LABEL_WIDTH_MM = 29
DEFAULT_LABEL_HEIGHT_MM = 90


@dataclass
class TicketingConfig:
    """Settings for the ticketing workflow and label output."""
    duplicate_window_seconds: float = DEFAULT_DUPLICATE_WINDOW_SECONDS
    entry_status: OrderStatus = OrderStatus.CREATED
    completion_status: OrderStatus = OrderStatus.PROCESSING
    label_output_dir: str = "labels"
    label_dpi: int = DEFAULT_LABEL_DPI
    label_width_mm: float = DEFAULT_LABEL_WIDTH_MM
    label_height_mm: float = DEFAULT_LABEL_HEIGHT_MM


def load_config(config_path: str = "config.ini") -> TicketingConfig:
    """
    Load TicketingConfig from an ini file.

    Args:
        config_path: Path to config.ini

    Returns:
        TicketingConfig with values from the file, defaults for the rest

    Raises:
        ValidationError: If a value is present but invalid
    """
    parser = configparser.ConfigParser()
    path = Path(config_path)

    if path.exists():
        parser.read(path, encoding='utf-8')
        logger.debug(f"Loaded configuration from {path}")
    else:
        logger.info(f"Config file {path} not found, using defaults")

    try:
        window = parser.getfloat('Ticketing', 'DuplicateWindowSeconds',
                                 fallback=DEFAULT_DUPLICATE_WINDOW_SECONDS)
        dpi = parser.getint('Labels', 'Dpi', fallback=DEFAULT_LABEL_DPI)
        width_mm = parser.getfloat('Labels', 'WidthMm', fallback=DEFAULT_LABEL_WIDTH_MM)
        height_mm = parser.getfloat('Labels', 'HeightMm', fallback=DEFAULT_LABEL_HEIGHT_MM)
    except ValueError as e:
        raise ValidationError(f"Invalid numeric value in {path}: {e}") from e

    if window < 0:
        raise ValidationError(f"DuplicateWindowSeconds must not be negative, got {window}")
    if dpi <= 0 or width_mm <= 0 or height_mm <= 0:
        raise ValidationError("Label Dpi, WidthMm and HeightMm must be positive")

    entry_status = OrderStatus.parse(parser.get('Ticketing', 'EntryStatus', fallback='CREATED'))
    completion_status = OrderStatus.parse(parser.get('Ticketing', 'CompletionStatus', fallback='PROCESSING'))
    if entry_status is None or completion_status is None:
        raise ValidationError("EntryStatus and CompletionStatus must be known order statuses")
    if entry_status == completion_status:
        raise ValidationError("EntryStatus and CompletionStatus must differ")

    return TicketingConfig(
        duplicate_window_seconds=window,
        entry_status=entry_status,
        completion_status=completion_status,
        label_output_dir=parser.get('Labels', 'OutputDirectory', fallback='labels'),
        label_dpi=dpi,
        label_width_mm=width_mm,
        label_height_mm=height_mm,
    )
