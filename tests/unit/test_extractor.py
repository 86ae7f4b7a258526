"""Unit tests for document text extraction."""

import fitz
import pytest

from agentic_rag.ingestion.extractor import FileProcessingError, extract_text, is_supported


class TestExtractText:

    def test_reads_plain_text(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("Inflation eased in 2024.", encoding="utf-8")
        assert extract_text(path) == "Inflation eased in 2024."

    def test_reads_markdown(self, tmp_path):
        path = tmp_path / "README.md"
        path.write_text("# Title\n\nBody", encoding="utf-8")
        assert extract_text(path) == "# Title\n\nBody"

    def test_unsupported_type_returns_none(self, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("a,b\n1,2", encoding="utf-8")
        assert extract_text(path) is None

    def test_invalid_utf8_raises(self, tmp_path):
        path = tmp_path / "binary.txt"
        path.write_bytes(b"\xff\xfe\xfa\x00garbage")
        with pytest.raises(FileProcessingError) as exc_info:
            extract_text(path)
        assert exc_info.value.file_name == "binary.txt"
        assert "binary.txt" in str(exc_info.value)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileProcessingError):
            extract_text(tmp_path / "missing.txt")

    def test_reads_pdf_pages(self, tmp_path):
        path = tmp_path / "report.pdf"
        doc = fitz.open()
        for text in ("First page text", "Second page text"):
            page = doc.new_page()
            page.insert_text((72, 72), text)
        doc.save(path)
        doc.close()

        extracted = extract_text(path)
        assert "First page text" in extracted
        assert "Second page text" in extracted
        assert extracted.index("First") < extracted.index("Second")

    def test_corrupt_pdf_raises(self, tmp_path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"this is not a pdf")
        with pytest.raises(FileProcessingError):
            extract_text(path)


class TestIsSupported:

    @pytest.mark.parametrize("name", ["a.txt", "b.md", "c.pdf", "D.PDF"])
    def test_supported(self, tmp_path, name):
        assert is_supported(tmp_path / name)

    @pytest.mark.parametrize("name", ["a.docx", "b.csv", "noext"])
    def test_unsupported(self, tmp_path, name):
        assert not is_supported(tmp_path / name)

    def test_extension_match_is_case_insensitive(self, tmp_path):
        path = tmp_path / "LOUD.TXT"
        path.write_text("shouting", encoding="utf-8")
        assert extract_text(path) == "shouting"
