import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

import pdfplumber
from docx import Document
from PIL import Image, UnidentifiedImageError

from andy_ai.exceptions import AppException

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME = "text/plain"
IMAGE_MIMES = {"image/jpeg", "image/png"}


@dataclass
class ExtractedDocument:
    """Text pulled out of one uploaded file"""
    name: str
    mime_type: str
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


def _extract_pdf(path: Path) -> Tuple[str, Dict[str, Any]]:
    with pdfplumber.open(path) as pdf:
        pages = [page.extract_text() or "" for page in pdf.pages]
    return "\n".join(pages).strip(), {"pages": len(pages)}


def _extract_docx(path: Path) -> Tuple[str, Dict[str, Any]]:
    document = Document(str(path))
    paragraphs = [p.text for p in document.paragraphs if p.text.strip()]
    return "\n".join(paragraphs), {"paragraphs": len(paragraphs)}


def _extract_text(path: Path) -> Tuple[str, Dict[str, Any]]:
    text = path.read_bytes().decode("utf-8", errors="replace")
    return text, {"characters": len(text)}


def _describe_image(path: Path, name: str) -> Tuple[str, Dict[str, Any]]:
    # No OCR: the model only gets the image's format and size
    with Image.open(path) as image:
        width, height = image.size
        image_format = image.format
    text = f"[Image {name}: {image_format} {width}x{height} pixels, no text extracted]"
    return text, {"width": width, "height": height, "format": image_format}


def extract_text(path, mime_type: str, name: Optional[str] = None) -> ExtractedDocument:
    """Extract text from a stored upload based on its MIME type"""
    path = Path(path)
    name = name or path.name
    mime_type = (mime_type or "").lower()

    try:
        if mime_type == PDF_MIME:
            text, metadata = _extract_pdf(path)
        elif mime_type == DOCX_MIME:
            text, metadata = _extract_docx(path)
        elif mime_type == TEXT_MIME:
            text, metadata = _extract_text(path)
        elif mime_type in IMAGE_MIMES:
            text, metadata = _describe_image(path, name)
        else:
            raise AppException(400, f"Unsupported file type: {mime_type}")
    except AppException:
        raise
    except (UnidentifiedImageError, OSError, ValueError, KeyError) as e:
        logger.error(f"Could not read {name}: {e}")
        raise AppException(422, f"Could not read file {name}")
    except Exception as e:
        # pdfplumber and python-docx raise their own parser errors for corrupt files
        logger.error(f"Could not parse {name}: {e}", exc_info=True)
        raise AppException(422, f"Could not read file {name}")

    logger.info(f"Extracted {len(text)} characters from {name} ({mime_type})")
    return ExtractedDocument(name=name, mime_type=mime_type, text=text, metadata=metadata)
