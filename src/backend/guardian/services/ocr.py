"""
OCR service for extracting text from uploaded subscription documents (images and PDFs).
"""

import io
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

import pytesseract
from PIL import Image, ImageEnhance, UnidentifiedImageError
from pdf2image import convert_from_bytes
from pdf2image.exceptions import PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError
import PyPDF2
from PyPDF2.errors import PdfReadError

from guardian.config import settings
from guardian.utils.errors import MalformedInput, UpstreamUnavailable

logger = logging.getLogger(__name__)

# (status, fraction complete in [0, 1])
ProgressCallback = Callable[[str, float], None]

TESSERACT_CONFIG = r'--oem 3 --psm 6'
# Below this many characters a PDF is treated as image-based.
MIN_PDF_TEXT_LENGTH = 50

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif')


def _ignore_progress(status: str, fraction: float) -> None:
    pass


class RecognitionSession:
    """An acquired text-recognition engine. Only valid inside OCRService.session()."""

    def __init__(self, progress: ProgressCallback):
        self.progress = progress
        self._images: List[Image.Image] = []
        self.closed = False

    def extract_text(self, file_data: bytes, mime_type: str, filename: str = "") -> str:
        """
        Extract text from a file (auto-detects format).

        Raises:
            MalformedInput: Unsupported type, unreadable file, or no text found
            UpstreamUnavailable: The recognition engine failed
        """
        if self.closed:
            raise UpstreamUnavailable("Recognition session already released")

        name = (filename or "").lower()
        is_pdf = mime_type == 'application/pdf' or name.endswith('.pdf')
        is_image = (mime_type or "").startswith('image/') or name.endswith(IMAGE_EXTENSIONS)

        if is_pdf:
            text = self.extract_pdf_text(file_data)
        elif is_image:
            text = self.recognize_image(file_data)
        else:
            raise MalformedInput(f"Unsupported file type: {mime_type}")

        if not text.strip():
            raise MalformedInput("No text could be extracted from the document")

        self.progress('done', 1.0)
        return text.strip()

    def recognize_image(self, image_data: bytes) -> str:
        """Run Tesseract over a raster image."""
        self.progress('processing image', 0.1)
        try:
            image = Image.open(io.BytesIO(image_data))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise MalformedInput("Failed to read image file") from e

        self._images.append(image)
        self.progress('recognizing text', 0.5)
        return self._ocr(image)

    def extract_pdf_text(self, pdf_data: bytes) -> str:
        """
        Extract text from a PDF.
        Uses the text layer page by page, then falls back to OCR for image-based PDFs.
        """
        try:
            reader = PyPDF2.PdfReader(io.BytesIO(pdf_data))
            pages = list(reader.pages)
        except (PdfReadError, ValueError, OSError) as e:
            raise MalformedInput("Failed to process PDF document") from e

        total = len(pages) or 1
        page_texts = []
        for i, page in enumerate(pages, 1):
            self.progress(f'processing PDF page {i} of {total}', i / total * 0.5)
            try:
                page_texts.append(page.extract_text() or "")
            except (PdfReadError, KeyError, ValueError, TypeError):
                logger.warning("Failed to read PDF page", extra={"page": i}, exc_info=True)
                continue

        text = "\n".join(page_texts)
        if len(text.strip()) >= MIN_PDF_TEXT_LENGTH:
            return text

        logger.info("PDF appears to be image-based, using OCR", extra={"pages": total})
        return self._ocr_pdf(pdf_data) or text

    def _ocr_pdf(self, pdf_data: bytes) -> str:
        try:
            images = convert_from_bytes(pdf_data)
        except PDFInfoNotInstalledError as e:
            raise UpstreamUnavailable("PDF rasterizer (poppler) is not installed") from e
        except (PDFPageCountError, PDFSyntaxError):
            logger.warning("Could not rasterize PDF", exc_info=True)
            return ""

        self._images.extend(images)
        texts = []
        for i, image in enumerate(images, 1):
            self.progress(f'recognizing PDF page {i} of {len(images)}', 0.5 + i / len(images) * 0.5)
            texts.append(self._ocr(image))
        return "\n".join(texts)

    def _ocr(self, image: Image.Image) -> str:
        try:
            return pytesseract.image_to_string(self._preprocess_image(image), config=TESSERACT_CONFIG)
        except pytesseract.TesseractError as e:
            raise UpstreamUnavailable("Text recognition failed") from e

    def _preprocess_image(self, image: Image.Image) -> Image.Image:
        """Grayscale and boost contrast; helps with faded scans."""
        if image.mode != 'RGB':
            image = image.convert('RGB')
        image = image.convert('L')
        return ImageEnhance.Contrast(image).enhance(2.0)

    def release(self) -> None:
        for image in self._images:
            image.close()
        self._images.clear()
        self.closed = True


class OCRService:
    """Service for acquiring the text-recognition engine."""

    def __init__(self):
        """Initialize OCR service with Tesseract configuration."""
        pytesseract.pytesseract.tesseract_cmd = settings.TESSERACT_CMD

    @contextmanager
    def session(self, progress: Optional[ProgressCallback] = None) -> Iterator[RecognitionSession]:
        """
        Acquire the recognition engine for the duration of a with-block.

        The session is released on every exit path, including errors.

        Raises:
            UpstreamUnavailable: If Tesseract cannot be started
        """
        report = progress or _ignore_progress
        report('initializing', 0.0)

        try:
            version = pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            logger.error("Failed to initialize OCR engine", exc_info=True)
            raise UpstreamUnavailable("Document processing is unavailable") from e

        logger.debug("OCR engine ready", extra={"tesseract_version": str(version)})
        report('ready', 0.0)

        recognition = RecognitionSession(report)
        try:
            yield recognition
        finally:
            recognition.release()
            report('terminated', 1.0)

    def extract_text(
        self,
        file_data: bytes,
        mime_type: str,
        filename: str = "",
        progress: Optional[ProgressCallback] = None
    ) -> str:
        """Acquire a session, extract text from one file, release."""
        with self.session(progress) as recognition:
            return recognition.extract_text(file_data, mime_type, filename)
