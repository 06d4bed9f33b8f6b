"""Pytest configuration for PDF Toolkit tests.

PDFs are built in memory with PyMuPDF; every page carries the label
"Original page <n>" so tests can check page order after edits.
"""

import io

import fitz
import pytest

from app import app as flask_app

LETTER = (612, 792)
A4 = (595, 842)


def make_pdf(sizes):
    doc = fitz.open()
    for number, (width, height) in enumerate(sizes, start=1):
        page = doc.new_page(width=width, height=height)
        page.insert_text((72, 72), f"Original page {number}", fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


def page_texts(data):
    doc = fitz.open(stream=data, filetype="pdf")
    texts = [page.get_text() for page in doc]
    doc.close()
    return texts


def upload(data, filename="report.pdf", **fields):
    form = {key: str(value) for key, value in fields.items()}
    form["file"] = (io.BytesIO(data), filename)
    return form


@pytest.fixture
def letter_pdf():
    return make_pdf([LETTER] * 3)


@pytest.fixture
def five_page_pdf():
    return make_pdf([LETTER] * 5)


@pytest.fixture
def client():
    flask_app.config["TESTING"] = True
    with flask_app.test_client() as client:
        yield client


@pytest.fixture
def page_limit():
    """Temporarily lower the page limit."""
    original = flask_app.config["MAX_PAGES"]
    flask_app.config["MAX_PAGES"] = 2
    yield 2
    flask_app.config["MAX_PAGES"] = original
