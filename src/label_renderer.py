# Standard library imports
import io
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

# Barcode generation libraries
import barcode
from barcode.writer import ImageWriter

# Image processing for label generation
from PIL import Image, ImageDraw, ImageFont

# Local imports
import tag_codec
from app_config import TicketingConfig
from exceptions import PrintFailureError
from order_models import TagLabel
from logger import get_logger

logger = get_logger(__name__)

# Space reserved under the barcode for customer, garment and order lines
TEXT_AREA_HEIGHT = 150

# Readable on a 29mm wide tag hanging from a garment
FONT_SIZE_PT = 20

MAX_TEXT_CHARS = 18


def _load_fonts():
    try:
        font = ImageFont.truetype("arial.ttf", FONT_SIZE_PT)
        font_bold = ImageFont.truetype("arialbd.ttf", FONT_SIZE_PT)
    except IOError:
        logger.warning("Arial fonts not found, falling back to default font")
        font = ImageFont.load_default()
        font_bold = font
    return font, font_bold


def _shorten(text: str) -> str:
    text = str(text)
    if len(text) <= MAX_TEXT_CHARS:
        return text
    return text[:MAX_TEXT_CHARS - 1] + "…"


def _customer_of(tag: str) -> str:
    parts = tag_codec.try_decode(tag)
    return parts.customer_id if parts else tag


def safe_file_stem(tag: str) -> str:
    """Filename stem for a tag: letters, digits, '-' and '_' only."""
    stem = "".join(c for c in str(tag) if c.isalnum() or c in '-_').rstrip()
    return stem or "unnamed_tag"


def render_tag_label(label: TagLabel, config: Optional[TicketingConfig] = None) -> Image.Image:
    """
    Render one garment tag as a portrait label image.

    Layout (top to bottom):
    - Code-128 barcode of the tag value, rotated to run along the tag length
    - customer name (bold)
    - garment display name
    - order id

    Args:
        label: Tag to render
        config: Label dimensions; defaults to 29 x 90 mm at 203 DPI

    Returns:
        RGB PIL image of the full label
    """
    config = config or TicketingConfig()

    # mm -> inches -> pixels
    label_width_px = int((config.label_width_mm / 25.4) * config.label_dpi)
    label_height_px = int((config.label_height_mm / 25.4) * config.label_dpi)
    barcode_area_px = label_height_px - TEXT_AREA_HEIGHT

    code128 = barcode.get_barcode_class('code128')
    barcode_obj = code128(label.tag, writer=ImageWriter())

    buffer = io.BytesIO()
    barcode_obj.write(buffer, {
        'module_height': 15.0,
        'write_text': False,
        'quiet_zone': 2
    })
    buffer.seek(0)
    barcode_img = Image.open(buffer)

    # Bars run across the narrow tag; the symbol runs along its length
    barcode_img = barcode_img.rotate(90, expand=True)

    aspect_ratio = barcode_img.width / barcode_img.height
    new_h = barcode_area_px
    new_w = int(new_h * aspect_ratio)
    if new_w > label_width_px:
        new_w = label_width_px
        new_h = int(new_w / aspect_ratio)
    barcode_img = barcode_img.resize((max(new_w, 1), max(new_h, 1)), Image.LANCZOS)

    label_img = Image.new('RGB', (label_width_px, label_height_px), 'white')
    label_img.paste(barcode_img, ((label_width_px - barcode_img.width) // 2, 0))

    draw = ImageDraw.Draw(label_img)
    font, font_bold = _load_fonts()

    lines = [
        (_shorten(label.customer_name or _customer_of(label.tag)), font_bold),
        (_shorten(label.item.display_name or label.item.item_id), font),
        (_shorten(f"#{label.order_id}"), font),
    ]

    y = barcode_area_px + 5
    for text, line_font in lines:
        bbox = draw.textbbox((0, 0), text, font=line_font)
        x = (label_width_px - (bbox[2] - bbox[0])) / 2
        draw.text((x, y), text, font=line_font, fill='black')
        y += (bbox[3] - bbox[1]) + 8

    return label_img


def batch_file_names(labels: Sequence[TagLabel]) -> List[str]:
    """
    One distinct PNG file name per label of a batch.

    Tags that sanitize to the same stem (e.g. "C1_A.1" and "C1_A1") get a
    numeric suffix in batch order: C1_A1.png, C1_A1-2.png.
    """
    names = []
    taken = set()
    for label in labels:
        stem = safe_file_stem(label.tag)
        name = f"{stem}.png"
        counter = 2
        while name.lower() in taken:
            name = f"{stem}-{counter}.png"
            counter += 1
        taken.add(name.lower())
        names.append(name)
    return names


class ImageLabelPrinter:
    """
    Print collaborator that renders tags to PNG files.

    The batch is atomic: every label is rendered into a scratch directory
    first, and files are moved into the output directory only when the whole
    batch rendered. If a move fails, the files already moved are removed and
    any label files they replaced are restored, so a failed batch leaves the
    output directory as it was.

    Attributes:
        output_dir (Path): Where finished label images are placed
        config (TicketingConfig): Label dimensions
        last_printed (List[Path]): Files produced by the last successful batch
    """

    def __init__(self, output_dir: Optional[str] = None, config: Optional[TicketingConfig] = None):
        self.config = config or TicketingConfig()
        self.output_dir = Path(output_dir or self.config.label_output_dir)
        self.last_printed: List[Path] = []

    def print_labels(self, labels: Sequence[TagLabel]) -> List[Path]:
        """
        Render all labels of a batch.

        Returns:
            Paths of the rendered label files (empty list for an empty batch)

        Raises:
            PrintFailureError: If any label fails to render or be saved
        """
        if not labels:
            logger.warning("No labels to print")
            return []

        order_id = labels[0].order_id
        logger.info(f"Rendering {len(labels)} labels for order {order_id} into {self.output_dir}")

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            scratch_dir = Path(tempfile.mkdtemp(prefix='.tmp_labels_', dir=self.output_dir))
        except OSError as e:
            raise PrintFailureError(f"Label directory not writable: {e}",
                                    order_id=order_id, label_count=len(labels)) from e

        try:
            rendered = []
            for label, name in zip(labels, batch_file_names(labels)):
                image = render_tag_label(label, self.config)
                path = scratch_dir / name
                image.save(path)
                rendered.append(path)

            final_paths = self._move_batch(rendered, scratch_dir)

        except Exception as e:
            logger.error(f"Label rendering failed: {e}", exc_info=True)
            raise PrintFailureError(f"Error during label generation: {e}",
                                    order_id=order_id, label_count=len(labels)) from e
        finally:
            shutil.rmtree(scratch_dir, ignore_errors=True)

        self.last_printed = final_paths
        logger.info(f"Rendered {len(final_paths)} labels")
        return final_paths

    def _move_batch(self, rendered: List[Path], scratch_dir: Path) -> List[Path]:
        """Move rendered files into output_dir, all or none."""
        backup_dir = scratch_dir / 'replaced'
        backup_dir.mkdir()

        moved = []
        backed_up = []
        try:
            for path in rendered:
                target = self.output_dir / path.name
                if target.exists():
                    os.replace(target, backup_dir / path.name)
                    backed_up.append(path.name)
                os.replace(path, target)
                moved.append(target)
        except OSError:
            for target in moved:
                target.unlink(missing_ok=True)
            for name in backed_up:
                os.replace(backup_dir / name, self.output_dir / name)
            raise

        return moved
