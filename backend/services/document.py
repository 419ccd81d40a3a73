"""Document parsing service for PDF and EPUB files.

Handles:
- File validation (size, filename sanitization)
- Format detection from MIME type, extension and content signature
- Per-page text extraction and outline walk for PDF (PyMuPDF)
- Per-chapter text and markup extraction for EPUB (zipfile + BeautifulSoup),
  with images inlined as data URIs

Parsing is CPU-bound; ``parse_file`` runs it via asyncio.to_thread so the
event loop stays responsive.
"""

import asyncio
import base64
import io
import logging
import posixpath
import re
import zipfile
from pathlib import Path
from urllib.parse import unquote, urlparse

import fitz  # PyMuPDF
from bs4 import BeautifulSoup

from config import Settings, get_settings
from services.types import Document, DocumentKind, OutlineEntry

logger = logging.getLogger(__name__)

PDF_MIME_TYPES = frozenset({"application/pdf", "application/x-pdf"})
EPUB_MIME_TYPES = frozenset({"application/epub+zip"})
HTML_EXTENSIONS = (".html", ".xhtml", ".htm")

IMAGE_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
}
DEFAULT_MIME_TYPE = "application/octet-stream"

EMPTY_PAGE_TEXT = "No text content found."
EMPTY_PAGE_HTML = "<p>No content found.</p>"

_WHITESPACE = re.compile(r"\s+")


class UnsupportedFormatError(Exception):
    """Raised when the input is neither a PDF nor an EPUB."""

    pass


class ParseFailureError(Exception):
    """Raised when a PDF/EPUB container is malformed or unreadable."""

    pass


class FileTooLargeError(Exception):
    """Raised when file exceeds size limit."""

    pass


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return _WHITESPACE.sub(" ", text).strip()


def image_mime_type(path: str) -> str:
    """Infer an image MIME type from its file extension."""
    return IMAGE_MIME_TYPES.get(posixpath.splitext(path)[1].lower(), DEFAULT_MIME_TYPE)


def resolve_member_path(base_member: str, reference: str) -> str:
    """Resolve a reference relative to the zip member that contains it.

    ``resolve_member_path("OEBPS/text/ch1.xhtml", "../images/a.png")``
    returns ``"OEBPS/images/a.png"``.
    """
    reference = reference.split("#", 1)[0]
    joined = posixpath.join(posixpath.dirname(base_member), reference)
    return posixpath.normpath(joined)


def detect_kind(
    data: bytes, declared_mime: str | None, filename: str
) -> DocumentKind:
    """Determine the document kind.

    Checks the declared content type first, then the file extension, then the
    content signature.

    Raises:
        UnsupportedFormatError: If none of them identify a PDF or EPUB.
    """
    mime = (declared_mime or "").split(";", 1)[0].strip().lower()
    if mime in PDF_MIME_TYPES:
        return DocumentKind.PDF
    if mime in EPUB_MIME_TYPES:
        return DocumentKind.EPUB

    ext = Path(filename).suffix.lower()
    if ext == ".pdf":
        return DocumentKind.PDF
    if ext == ".epub":
        return DocumentKind.EPUB

    if data.startswith(b"%PDF-"):
        return DocumentKind.PDF
    if data.startswith(b"PK\x03\x04"):
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as zf:
                if zf.read("mimetype").strip() == b"application/epub+zip":
                    return DocumentKind.EPUB
        except (zipfile.BadZipFile, KeyError, NotImplementedError, RuntimeError):
            pass

    raise UnsupportedFormatError(
        "Unsupported file type. Please upload a PDF or EPUB file."
    )


class DocumentParser:
    """Service for turning uploaded files into ``Document`` records."""

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize document parser."""
        self.settings = settings or get_settings()

    def sanitize_filename(self, filename: str) -> str:
        """Sanitize filename to prevent path traversal and other issues."""
        filename = Path(filename or "").name
        filename = re.sub(r'[<>:"/\\|?*\x00-\x1f]', "_", filename)

        max_length = 255
        if len(filename) > max_length:
            name, ext = Path(filename).stem, Path(filename).suffix
            filename = name[: max_length - len(ext)] + ext

        if not filename or filename.startswith("."):
            filename = "document" + Path(filename).suffix

        return filename

    def validate_size(self, file_size: int) -> None:
        """Reject empty or oversized uploads."""
        if file_size <= 0:
            raise ValueError("File size must be positive")

        if file_size > self.settings.max_file_size_bytes:
            raise FileTooLargeError(
                f"File size {file_size} exceeds limit of {self.settings.max_file_size_mb}MB"
            )

    async def parse_file(
        self, data: bytes, declared_mime: str | None, filename: str
    ) -> Document:
        """Parse a document without blocking the event loop."""
        return await asyncio.to_thread(self.parse, data, declared_mime, filename)

    def parse(self, data: bytes, declared_mime: str | None, filename: str) -> Document:
        """Parse raw file bytes into a Document.

        Args:
            data: Uploaded file content.
            declared_mime: Content type reported by the client, if any.
            filename: Original filename; also the reading-progress key.

        Raises:
            UnsupportedFormatError: Input is not a PDF or EPUB.
            ParseFailureError: Container is malformed.
            FileTooLargeError: Input exceeds the configured size limit.
        """
        filename = self.sanitize_filename(filename)
        self.validate_size(len(data))
        kind = detect_kind(data, declared_mime, filename)

        try:
            if kind is DocumentKind.PDF:
                document = self._parse_pdf(data, filename)
            else:
                document = self._parse_epub(data, filename)
        except ParseFailureError:
            raise
        except Exception as e:
            logger.error("Failed to parse document %s: %s", filename, e)
            raise ParseFailureError(
                "Couldn't parse the file. Please make sure it is a valid PDF or EPUB."
            ) from e

        logger.info(
            "Parsed %s (%s): %d pages, %d outline entries",
            filename,
            kind.value,
            document.page_count,
            len(document.outline),
        )
        return document

    # --- PDF ---

    def _parse_pdf(self, data: bytes, filename: str) -> Document:
        """Parse PDF bytes using PyMuPDF."""
        try:
            pdf = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise ParseFailureError(f"Failed to open PDF: {e}") from e

        try:
            pages = [self._pdf_page_text(page) for page in pdf]
            outline: list[OutlineEntry] = []
            self._walk_outline(pdf.outline, 0, len(pages), outline)
        finally:
            pdf.close()

        if not pages:
            pages = [EMPTY_PAGE_TEXT]

        return Document(
            title=Path(filename).stem,
            file_name=filename,
            kind=DocumentKind.PDF,
            pages=tuple(pages),
            # the original bytes are shared by every page, never re-encoded
            render_payload=tuple(data for _ in pages),
            outline=tuple(outline),
        )

    def _pdf_page_text(self, page) -> str:
        """Join all text spans on a page with single spaces."""
        spans: list[str] = []
        for block in page.get_text("dict").get("blocks", []):
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    spans.append(span.get("text", ""))
        return collapse_whitespace(" ".join(spans))

    def _walk_outline(
        self,
        node,
        level: int,
        page_count: int,
        entries: list[OutlineEntry],
    ) -> None:
        """Depth-first walk over a PyMuPDF outline tree.

        Nodes that are external links or do not resolve to a page are dropped,
        but their children are still visited one level deeper.
        """
        while node is not None:
            page_index = getattr(node, "page", -1)
            if page_index is None:
                page_index = -1

            if getattr(node, "is_external", False):
                logger.debug("Skipping external outline link: %s", node.title)
            elif 0 <= page_index < page_count:
                entries.append(
                    OutlineEntry(title=node.title or "", page_index=page_index, level=level)
                )
            else:
                logger.warning(
                    "Could not resolve page for outline item %r (page=%s)",
                    node.title,
                    page_index,
                )

            if node.down is not None:
                self._walk_outline(node.down, level + 1, page_count, entries)
            node = node.next

    # --- EPUB ---

    def _parse_epub(self, data: bytes, filename: str) -> Document:
        """Parse an EPUB container into one page per non-empty chapter file."""
        try:
            zf = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as e:
            raise ParseFailureError(f"Failed to open EPUB container: {e}") from e

        text_pages: list[str] = []
        html_pages: list[str] = []
        outline: list[OutlineEntry] = []

        with zf:
            members = set(zf.namelist())
            for member in self._epub_reading_order(zf):
                soup = BeautifulSoup(
                    zf.read(member).decode("utf-8", errors="replace"), "html.parser"
                )
                body = soup.find("body")
                if body is None:
                    raise ParseFailureError(f"EPUB chapter {member} has no <body>")

                image_count = self._inline_images(zf, members, member, body)
                text = collapse_whitespace(body.get_text(" "))
                if not text and image_count == 0:
                    logger.debug("Skipping empty EPUB member %s", member)
                    continue

                page_index = len(text_pages)
                text_pages.append(text)
                html_pages.append(body.decode_contents())
                outline.append(
                    OutlineEntry(
                        title=self._chapter_title(soup, member, page_index),
                        page_index=page_index,
                        level=0,
                    )
                )

        if not text_pages:
            text_pages = [EMPTY_PAGE_TEXT]
            html_pages = [EMPTY_PAGE_HTML]

        return Document(
            title=Path(filename).stem,
            file_name=filename,
            kind=DocumentKind.EPUB,
            pages=tuple(text_pages),
            render_payload=tuple(html_pages),
            outline=tuple(outline),
        )

    def _epub_reading_order(self, zf: zipfile.ZipFile) -> list[str]:
        """Return chapter members in reading order.

        Spine-listed members come first in spine order, followed by any other
        HTML members sorted by path. Without a usable spine (or when configured
        for it) the order is a plain lexicographic path sort.
        """
        chapters = sorted(
            name for name in zf.namelist() if name.lower().endswith(HTML_EXTENSIONS)
        )
        if self.settings.epub_reading_order != "spine":
            return chapters

        spine = self._epub_spine(zf)
        if not spine:
            return chapters

        available = set(chapters)
        ordered = [path for path in dict.fromkeys(spine) if path in available]
        listed = set(ordered)
        return ordered + [name for name in chapters if name not in listed]

    def _epub_spine(self, zf: zipfile.ZipFile) -> list[str]:
        """Read spine item paths from the OPF package, empty if unavailable."""
        try:
            container = BeautifulSoup(zf.read("META-INF/container.xml"), "html.parser")
            rootfile = container.find("rootfile")
            if rootfile is None or not rootfile.get("full-path"):
                return []
            opf_path = rootfile["full-path"]
            package = BeautifulSoup(zf.read(opf_path), "html.parser")
        except KeyError as e:
            logger.debug("EPUB has no readable package document: %s", e)
            return []

        manifest = {
            item["id"]: item["href"]
            for item in package.find_all("item")
            if item.get("id") and item.get("href")
        }
        spine = package.find("spine")
        if spine is None:
            return []

        paths = []
        for itemref in spine.find_all("itemref"):
            href = manifest.get(itemref.get("idref"))
            if href:
                paths.append(unquote(resolve_member_path(opf_path, href)))
        return paths

    def _inline_images(
        self,
        zf: zipfile.ZipFile,
        members: set[str],
        member: str,
        body,
    ) -> int:
        """Replace image references that point into the zip with data URIs.

        Returns:
            Number of image elements in the body, resolved or not.
        """
        images = body.find_all("img")
        svg_images = body.find_all("image")

        for img in images:
            target = self._resolve_image(members, member, img.get("src"))
            if target is None:
                continue
            img["src"] = self._data_uri(zf, target)
            style = img.get("style", "").strip().rstrip(";")
            img["style"] = f"{style}; max-width: 100%; height: auto".lstrip("; ")

        for image in svg_images:
            attr = "xlink:href" if image.get("xlink:href") else "href"
            target = self._resolve_image(members, member, image.get(attr))
            if target is not None:
                image[attr] = self._data_uri(zf, target)

        return len(images) + len(svg_images)

    def _resolve_image(
        self, members: set[str], member: str, reference: str | None
    ) -> str | None:
        if not reference or urlparse(reference).scheme:
            return None

        path = resolve_member_path(member, reference)
        if path in members:
            return path
        decoded = unquote(path)
        if decoded in members:
            return decoded
        return None

    def _data_uri(self, zf: zipfile.ZipFile, path: str) -> str:
        encoded = base64.b64encode(zf.read(path)).decode("ascii")
        return f"data:{image_mime_type(path)};base64,{encoded}"

    def _chapter_title(self, soup: BeautifulSoup, member: str, page_index: int) -> str:
        """Use <title>, then the member's filename stem, then a page ordinal."""
        title_tag = soup.find("title")
        if title_tag is not None:
            title = title_tag.get_text().strip()
            if title:
                return title

        stem = posixpath.splitext(posixpath.basename(member))[0]
        return stem or f"Chapter {page_index + 1}"
