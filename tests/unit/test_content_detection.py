"""Tests for filetype-backed content sniffing."""

from objectstore.application.services.content_detection import FiletypeSniffer
from tests.conftest import make_png


def test_png_detected() -> None:
    assert FiletypeSniffer().sniff(make_png()) == "image/png"


def test_pdf_detected() -> None:
    assert FiletypeSniffer().sniff(b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\n") == "application/pdf"


def test_plain_text_not_detected() -> None:
    assert FiletypeSniffer().sniff(b"hello world") is None


def test_empty_not_detected() -> None:
    assert FiletypeSniffer().sniff(b"") is None
