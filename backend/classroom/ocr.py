from __future__ import annotations
import logging
from io import BytesIO
from typing import List, Optional

import fitz  # PyMuPDF
import pytesseract
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

from .errors import EmptyExtraction, FileTooLarge, InvalidDocument, OcrFailure, UnsupportedFileType
from .settings import settings

logger = logging.getLogger(__name__)

if settings.tesseract_cmd:
	pytesseract.pytesseract.tesseract_cmd = settings.tesseract_cmd

SUPPORTED_IMAGE_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"]
SUPPORTED_DOCUMENT_TYPES = ["application/pdf"]
MAX_IMAGE_BYTES = 10 * 1024 * 1024
PDF_RENDER_SCALE = 2.0
LOW_CONFIDENCE = 30.0


class FileInfo(BaseModel):
	name: str
	type: str
	size: int


class ExtractionResult(BaseModel):
	success: bool = True
	extracted_text: str
	message: str
	file_info: FileInfo
	confidence: Optional[float] = None


def _recognize(image: Image.Image) -> str:
	return pytesseract.image_to_string(image, lang=settings.ocr_language)


def _mean_confidence(image: Image.Image) -> float:
	data = pytesseract.image_to_data(image, lang=settings.ocr_language, output_type=pytesseract.Output.DICT)
	scores: List[float] = []
	for value in data.get("conf", []):
		try:
			score = float(value)
		except (TypeError, ValueError):
			continue
		# Tesseract reports -1 for layout rows without a word
		if score >= 0:
			scores.append(score)
	if not scores:
		return 0.0
	return sum(scores) / len(scores)


def extract_text(data: bytes, filename: str, content_type: str) -> ExtractionResult:
	"""Route an uploaded file to the PDF or image OCR pipeline."""
	logger.info("Extracting text from %s (%s, %d bytes)", filename, content_type, len(data))
	if content_type not in SUPPORTED_IMAGE_TYPES + SUPPORTED_DOCUMENT_TYPES:
		raise UnsupportedFileType(
			f"Unsupported file type: {content_type}. Please use JPEG, PNG, GIF, WebP images or PDF documents."
		)
	info = FileInfo(name=filename, type=content_type, size=len(data))
	if content_type in SUPPORTED_DOCUMENT_TYPES:
		return extract_text_from_pdf(data, info)
	return extract_text_from_image(data, info)


def extract_text_from_pdf(data: bytes, info: FileInfo) -> ExtractionResult:
	try:
		document = fitz.open(stream=data, filetype="pdf")
	except Exception as e:
		logger.error("PDF open failed for %s: %s", info.name, e)
		raise InvalidDocument("Invalid or corrupted PDF file. Please try a different document.") from e
	if document.page_count == 0:
		document.close()
		raise InvalidDocument("Invalid or corrupted PDF file. Please try a different document.")

	chunks: List[str] = []
	try:
		matrix = fitz.Matrix(PDF_RENDER_SCALE, PDF_RENDER_SCALE)
		for index, page in enumerate(document, start=1):
			logger.debug("Processing PDF page %d/%d", index, document.page_count)
			pixmap = page.get_pixmap(matrix=matrix)
			image = Image.open(BytesIO(pixmap.tobytes("png")))
			text = _recognize(image).strip()
			if text:
				chunks.append(f"\n--- Page {index} ---\n{text}\n")
	except Exception as e:
		logger.error("PDF OCR error for %s: %s", info.name, e)
		raise OcrFailure(f"Failed to extract text from PDF: {e}") from e
	finally:
		document.close()

	all_text = "".join(chunks).strip()
	if not all_text:
		raise EmptyExtraction("No text was extracted from the PDF. Please ensure the document contains readable text.")
	return ExtractionResult(
		extracted_text=all_text,
		message="Text extracted successfully from PDF using OCR",
		file_info=info,
	)


def extract_text_from_image(data: bytes, info: FileInfo) -> ExtractionResult:
	if info.size > MAX_IMAGE_BYTES:
		raise FileTooLarge("File size too large. Please use files smaller than 10MB.")
	try:
		image = Image.open(BytesIO(data))
		image.load()
	except Image.DecompressionBombError as e:
		raise InvalidDocument("Image dimensions are too large to process. Please use a smaller image.") from e
	except (UnidentifiedImageError, OSError) as e:
		raise InvalidDocument("Invalid or corrupted image file. Please try a different image.") from e

	try:
		text = _recognize(image)
		confidence = _mean_confidence(image)
	except pytesseract.TesseractNotFoundError as e:
		raise OcrFailure("OCR engine is not installed. Install the system package 'tesseract-ocr'.") from e
	except Exception as e:
		logger.error("Tesseract OCR error for %s: %s", info.name, e)
		raise OcrFailure(f"Failed to extract text from the image: {e}. Please try with a different image.") from e

	logger.info("Tesseract OCR completed. Confidence: %.1f", confidence)
	if not text or not text.strip():
		raise EmptyExtraction("No text was extracted from the image. Please ensure the image contains readable text.")
	if confidence < LOW_CONFIDENCE:
		logger.warning("Low OCR confidence detected: %.1f", confidence)
	return ExtractionResult(
		extracted_text=text.strip(),
		message=f"Text extracted successfully using Tesseract (confidence: {confidence:.1f}%)",
		file_info=info,
		confidence=confidence,
	)
