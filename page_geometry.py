"""
PDF Toolkit - Page Geometry Engine

Pure functions over immutable document descriptions. Nothing here touches
PDF bytes: the codec in app.py decodes a file into a Document, calls these
functions, and writes the result back.

Coordinates are PDF points (1/72 inch) with the origin at the bottom-left of
the page's visible box.
"""

import logging
import math
from dataclasses import dataclass, field, replace

logger = logging.getLogger(__name__)

VALID_ROTATIONS = (0, 90, 180, 270)

WATERMARK_FONT_SIZE = 24.0
WATERMARK_ROTATION = 45.0
WATERMARK_OPACITY = 0.3

TEXT_FONT_SIZE = 12.0

MAX_REPORTED_PAGES = 10

PAGE_NUMBER_POSITIONS = (
    'top-left', 'top-center', 'top-right',
    'bottom-left', 'bottom-center', 'bottom-right',
)


class PageGeometryError(Exception):
    """Base class for validation failures raised by the engine."""

    status_code = 400

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self):
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message

    def to_dict(self):
        return {'error': self.message}


class InvalidCropError(PageGeometryError):
    """A crop would collapse a page, or a margin is outside 0-100%."""

    def __init__(self, message, page_index=None, field_name=None):
        details = f"page={page_index}" if page_index is not None else None
        super().__init__(message, details=details)
        self.page_index = page_index
        self.field_name = field_name

    def to_dict(self):
        result = super().to_dict()
        if self.page_index is not None:
            result['page'] = self.page_index
        if self.field_name is not None:
            result['field'] = self.field_name
        return result


def _run_label(entry):
    """Format a page number or an inclusive (start, end) run."""
    if isinstance(entry, tuple):
        start, end = entry
        return str(start) if start == end else f"{start}-{end}"
    return str(entry)


def _run_start(entry):
    return entry[0] if isinstance(entry, tuple) else entry


class PageRangeError(PageGeometryError):
    """Page numbers outside the document.

    ``invalid_pages`` holds at most MAX_REPORTED_PAGES labels such as
    "9" or "4-2000000"; ``truncated`` tells whether more were dropped.
    """

    def __init__(self, message, invalid_pages=(), total_pages=None):
        entries = sorted(invalid_pages, key=_run_start)
        self.invalid_pages = [_run_label(entry) for entry in entries[:MAX_REPORTED_PAGES]]
        self.truncated = len(entries) > MAX_REPORTED_PAGES
        self.total_pages = total_pages
        details = f"total_pages={total_pages}" if total_pages is not None else None
        super().__init__(message, details=details)

    def to_dict(self):
        result = super().to_dict()
        result['invalid_pages'] = self.invalid_pages
        result['total_pages'] = self.total_pages
        if self.truncated:
            result['truncated'] = True
        return result


def _invalid_pages_error(invalid_pages, total_pages):
    entries = sorted(invalid_pages, key=_run_start)
    listed = ', '.join(_run_label(entry) for entry in entries[:MAX_REPORTED_PAGES])
    if len(entries) > MAX_REPORTED_PAGES:
        listed += ', ...'
    return PageRangeError(
        f"Invalid page numbers: {listed}. Total pages: {total_pages}",
        invalid_pages=entries,
        total_pages=total_pages,
    )


class EmptyDocumentError(PageGeometryError):
    def __init__(self, message="Cannot remove all pages. At least one page must remain."):
        super().__init__(message)


class InvalidPageNumberSettingsError(PageGeometryError):
    def __init__(self, message, field_name):
        super().__init__(message, details=f"field={field_name}")
        self.field_name = field_name

    def to_dict(self):
        result = super().to_dict()
        result['field'] = self.field_name
        return result


class InvalidTextPlacementError(PageGeometryError):
    pass


class InvalidRotationError(PageGeometryError):
    def __init__(self, rotation):
        super().__init__(
            f"Rotation must be one of {', '.join(map(str, VALID_ROTATIONS))} degrees",
            details=f"rotation={rotation}",
        )
        self.rotation = rotation


class PageLimitError(PageGeometryError):
    status_code = 413

    def __init__(self, page_count, limit):
        super().__init__(
            f"Document has {page_count} pages, the limit is {limit}",
            details=f"page_count={page_count}",
        )
        self.page_count = page_count
        self.limit = limit


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Page:
    """One page of a decoded document.

    Attributes:
        width: Width of the visible box in points
        height: Height of the visible box in points
        rotation: Display rotation in degrees (0, 90, 180, 270)
        index: Current 1-based position in the document
        source_index: 0-based page number in the decoded source file
        x: Left edge of the visible box in PDF space
        y: Bottom edge of the visible box in PDF space
    """

    width: float
    height: float
    rotation: int = 0
    index: int = 1
    source_index: int = 0
    x: float = 0.0
    y: float = 0.0

    def to_dict(self):
        return {
            'index': self.index,
            'width': self.width,
            'height': self.height,
            'rotation': self.rotation,
        }


@dataclass(frozen=True)
class Document:
    pages: tuple = field(default_factory=tuple)

    def __post_init__(self):
        # Index always reflects position, whatever the pages carried in
        object.__setattr__(self, 'pages', tuple(
            replace(page, index=position) if page.index != position else page
            for position, page in enumerate(self.pages, start=1)
        ))

    def __len__(self):
        return len(self.pages)

    def __iter__(self):
        return iter(self.pages)

    @property
    def page_count(self):
        return len(self.pages)

    @classmethod
    def from_sizes(cls, sizes, rotations=None):
        """Build a document from (width, height) pairs, numbered from 1."""
        rotations = rotations or [0] * len(sizes)
        return cls(
            Page(width=w, height=h, rotation=r, index=i + 1, source_index=i)
            for i, ((w, h), r) in enumerate(zip(sizes, rotations))
        )


@dataclass(frozen=True)
class CropSpec:
    """Percentages of the page width (left/right) or height (top/bottom) to cut."""

    left_pct: float = 0.0
    right_pct: float = 0.0
    top_pct: float = 0.0
    bottom_pct: float = 0.0


@dataclass(frozen=True)
class PageNumberSpec:
    position: str = 'bottom-center'
    start_number: int = 1
    format: str = None
    font_size: float = 12.0
    margin_top: float = 20.0
    margin_bottom: float = 20.0
    margin_left: float = 36.0
    margin_right: float = 36.0
    include_total: bool = False

    @property
    def template(self):
        """The numbering template; the default depends on include_total."""
        if self.format:
            return self.format
        return 'Page {n} of {t}' if self.include_total else 'Page {n}'


@dataclass(frozen=True)
class TextPlacement:
    x: float
    y: float
    text: str
    font_size: float = TEXT_FONT_SIZE
    rotation: float = 0.0
    opacity: float = 1.0


def estimate_text_width(text, font_size):
    """Rough Helvetica width: half an em per character."""
    return len(text) * font_size * 0.5


# ---------- crop ------------------------------------------------------

def crop_document(document, spec):
    """Shrink every page's visible box by the margins in ``spec``.

    The whole document is validated before any page is built, so an
    InvalidCropError never comes with a partially cropped result.
    """
    for name in ('left_pct', 'right_pct', 'top_pct', 'bottom_pct'):
        value = getattr(spec, name)
        if not 0 <= value <= 100:
            raise InvalidCropError(
                f"Crop margins must be between 0% and 100% ({name}={value})",
                field_name=name,
            )

    cropped = []
    for page in document:
        left = spec.left_pct / 100 * page.width
        right = spec.right_pct / 100 * page.width
        top = spec.top_pct / 100 * page.height
        bottom = spec.bottom_pct / 100 * page.height
        new_width = page.width - left - right
        new_height = page.height - top - bottom

        if new_width <= 0 or new_height <= 0:
            raise InvalidCropError(
                f"Invalid crop parameters: crop area too small for page {page.index} "
                f"(width: {round(new_width)}pt, height: {round(new_height)}pt)",
                page_index=page.index,
            )

        cropped.append(replace(
            page,
            x=page.x + left,
            y=page.y + bottom,
            width=new_width,
            height=new_height,
        ))

    logger.debug("Cropped %d pages with %s", len(cropped), spec)
    return Document(cropped)


# ---------- page removal ----------------------------------------------

@dataclass(frozen=True)
class PageSelection:
    """Parsed removal input.

    Attributes:
        pages: Selected page numbers inside 1..total_pages
        out_of_range: (start, end) runs that fall outside the document
    """

    pages: frozenset = frozenset()
    out_of_range: tuple = ()


def _split_run(start, end, total_pages):
    """Clip an inclusive run to 1..total_pages; return (inside, outside runs)."""
    outside = []
    if start < 1:
        outside.append((start, min(end, 0)))
    if end > total_pages:
        outside.append((max(start, total_pages + 1), end))
    low, high = max(start, 1), min(end, total_pages)
    inside = range(low, high + 1) if low <= high else range(0)
    return inside, outside


def parse_page_selection(text, total_pages):
    """Parse "1,3-5" style input against a document of ``total_pages``.

    Tokens that are not an integer or an ascending ``a-b`` range are
    skipped without error. Ranges are clipped to the document, so the
    work done never depends on how large the typed numbers are.
    """
    pages = set()
    out_of_range = set()
    if not text:
        return PageSelection()

    for token in text.split(','):
        token = token.strip()
        if not token:
            continue
        if '-' in token:
            start_text, _, end_text = token.partition('-')
            try:
                start, end = int(start_text.strip()), int(end_text.strip())
            except ValueError:
                logger.debug("Skipping malformed range %r", token)
                continue
            if start > end:
                continue
        else:
            try:
                start = end = int(token)
            except ValueError:
                logger.debug("Skipping malformed page %r", token)
                continue

        inside, outside = _split_run(start, end, total_pages)
        pages.update(inside)
        out_of_range.update(outside)

    return PageSelection(frozenset(pages), tuple(sorted(out_of_range)))


def remove_page_set(document, selection):
    """Return a document without the 1-based page numbers in ``selection``."""
    selection = set(selection)
    total = len(document)

    if not selection:
        raise PageRangeError("Enter pages to remove (e.g. 1,3-5)", total_pages=total)

    invalid = [p for p in selection if p < 1 or p > total]
    if invalid:
        raise _invalid_pages_error(invalid, total)

    kept = [page for page in document if page.index not in selection]
    if not kept:
        raise EmptyDocumentError()

    return Document(kept)


def remove_pages(document, pages_text):
    selection = parse_page_selection(pages_text, len(document))
    if selection.out_of_range:
        raise _invalid_pages_error(selection.out_of_range, len(document))
    return remove_page_set(document, selection.pages)


def get_page(document, page_number):
    total = len(document)
    if not 1 <= page_number <= total:
        raise PageRangeError(
            f"Invalid page number: {page_number}. Total pages: {total}",
            invalid_pages=[page_number],
            total_pages=total,
        )
    return document.pages[page_number - 1]


# ---------- rotation --------------------------------------------------

def rotate_page(document, page_number, rotation):
    """Set the absolute display rotation of one page."""
    get_page(document, page_number)

    normalized = rotation % 360
    if normalized not in VALID_ROTATIONS:
        raise InvalidRotationError(rotation)

    return Document(
        replace(page, rotation=normalized) if page.index == page_number else page
        for page in document
    )


# ---------- text placement --------------------------------------------

def format_page_number(spec, page_index, total_pages):
    number = spec.start_number + page_index - 1
    return spec.template.replace('{n}', str(number)).replace('{t}', str(total_pages))


def _check_page_number_spec(spec, page):
    if spec.position not in PAGE_NUMBER_POSITIONS:
        raise InvalidPageNumberSettingsError(f"Unknown position '{spec.position}'", 'position')
    if spec.font_size <= 0:
        raise InvalidPageNumberSettingsError("Font size must be positive", 'font_size')
    if spec.start_number < 1:
        raise InvalidPageNumberSettingsError("Start number must be at least 1", 'start_number')

    for name in ('margin_top', 'margin_bottom', 'margin_left', 'margin_right'):
        if getattr(spec, name) < 0:
            raise InvalidPageNumberSettingsError(f"{name} must not be negative", name)

    if spec.margin_top + spec.font_size > page.height:
        raise InvalidPageNumberSettingsError("Top margin exceeds the page height", 'margin_top')
    if spec.margin_bottom + spec.font_size > page.height:
        raise InvalidPageNumberSettingsError("Bottom margin exceeds the page height", 'margin_bottom')
    if spec.margin_left > page.width:
        raise InvalidPageNumberSettingsError("Left margin exceeds the page width", 'margin_left')
    if spec.margin_right > page.width:
        raise InvalidPageNumberSettingsError("Right margin exceeds the page width", 'margin_right')


def place_page_number(page, page_index, total_pages, spec, measure=estimate_text_width):
    """Compute where the page number for ``page_index`` of ``total_pages`` goes.

    Args:
        page: Page the number is drawn on
        page_index: 1-based position of the page
        total_pages: Number of pages in the document
        spec: Numbering settings
        measure: Callable (text, font_size) -> width in points

    Returns:
        TextPlacement relative to the page's visible box
    """
    if not 1 <= page_index <= total_pages:
        raise PageRangeError(
            f"Page {page_index} is outside 1-{total_pages}",
            invalid_pages=[page_index],
            total_pages=total_pages,
        )
    _check_page_number_spec(spec, page)

    text = format_page_number(spec, page_index, total_pages)
    width = measure(text, spec.font_size)
    vertical, horizontal = spec.position.split('-')

    if horizontal == 'left':
        x = spec.margin_left
    elif horizontal == 'center':
        x = page.width / 2 - width / 2
    else:
        x = page.width - spec.margin_right - width

    if vertical == 'top':
        y = page.height - spec.margin_top - spec.font_size
    else:
        y = spec.margin_bottom

    return TextPlacement(x=x, y=y, text=text, font_size=spec.font_size)


def number_pages(document, spec, measure=estimate_text_width):
    total = len(document)
    return [place_page_number(page, page.index, total, spec, measure) for page in document]


def place_watermark(page, text, measure=estimate_text_width):
    if not text or not text.strip():
        raise InvalidTextPlacementError("Watermark text must not be empty")
    half_width = measure(text, WATERMARK_FONT_SIZE) / 2
    return TextPlacement(
        x=page.width / 2 - half_width,
        y=page.height / 2,
        text=text,
        font_size=WATERMARK_FONT_SIZE,
        rotation=WATERMARK_ROTATION,
        opacity=WATERMARK_OPACITY,
    )


def watermark_document(document, text, measure=estimate_text_width):
    return [place_watermark(page, text, measure) for page in document]


def _check_scale(display_scale):
    if not math.isfinite(display_scale) or display_scale <= 0:
        raise InvalidTextPlacementError(
            "Display scale must be positive", details=f"scale={display_scale}"
        )


def map_click_to_pdf_coords(click_x, click_y, display_scale, page_height):
    """Map a click on a canvas rendered at ``display_scale`` to page space.

    The canvas origin is top-left, the page origin bottom-left.
    """
    _check_scale(display_scale)
    return Point(click_x / display_scale, page_height - click_y / display_scale)


def map_pdf_to_click_coords(x, y, display_scale, page_height):
    _check_scale(display_scale)
    return Point(x * display_scale, (page_height - y) * display_scale)


def place_text(page, text, click_x, click_y, display_scale):
    if not text or not text.strip():
        raise InvalidTextPlacementError("Text must not be empty")
    point = map_click_to_pdf_coords(click_x, click_y, display_scale, page.height)
    return TextPlacement(x=point.x, y=point.y, text=text, font_size=TEXT_FONT_SIZE)


def document_info(document):
    return {
        'page_count': len(document),
        'pages': [page.to_dict() for page in document],
    }
