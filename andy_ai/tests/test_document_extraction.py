import pytest
from docx import Document
from PIL import Image

from andy_ai.exceptions import AppException
from andy_ai.services.document_extraction import DOCX_MIME, extract_text


def test_plain_text(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_bytes("Rent: $1,200\nCafé: $4".encode("utf-8"))

    doc = extract_text(path, "text/plain", "notes.txt")
    assert doc.text == "Rent: $1,200\nCafé: $4"
    assert doc.name == "notes.txt"
    assert doc.metadata["characters"] == len(doc.text)


def test_docx_paragraphs(tmp_path):
    path = tmp_path / "budget.docx"
    document = Document()
    document.add_paragraph("Monthly budget")
    document.add_paragraph("")
    document.add_paragraph("Groceries 300")
    document.save(str(path))

    doc = extract_text(path, DOCX_MIME)
    assert doc.text == "Monthly budget\nGroceries 300"
    assert doc.metadata == {"paragraphs": 2}
    assert doc.name == "budget.docx"


def test_image_is_described_not_read(tmp_path):
    path = tmp_path / "receipt.png"
    Image.new("RGB", (120, 80), "white").save(path)

    doc = extract_text(path, "image/png", "receipt.png")
    assert doc.text == "[Image receipt.png: PNG 120x80 pixels, no text extracted]"
    assert doc.metadata["width"] == 120


def test_pdf_pages(tmp_path):
    path = tmp_path / "scan.pdf"
    Image.new("RGB", (200, 200), "white").save(path, "PDF")

    doc = extract_text(path, "application/pdf", "scan.pdf")
    assert doc.metadata == {"pages": 1}
    assert doc.text == ""


def test_unsupported_type(tmp_path):
    path = tmp_path / "data.csv"
    path.write_text("a,b\n1,2")

    with pytest.raises(AppException) as exc:
        extract_text(path, "text/csv")
    assert exc.value.status_code == 400


@pytest.mark.parametrize("name,mime", [
    ("broken.pdf", "application/pdf"),
    ("broken.png", "image/png"),
    ("broken.docx", DOCX_MIME),
])
def test_corrupt_files(tmp_path, name, mime):
    path = tmp_path / name
    path.write_bytes(b"definitely not what the extension says")

    with pytest.raises(AppException) as exc:
        extract_text(path, mime, name)
    assert exc.value.status_code == 422
    assert name in exc.value.detail
