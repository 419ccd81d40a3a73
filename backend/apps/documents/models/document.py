"""API schemas for open documents.

These describe what the Viewer receives about a parsed document; the page
text used for the assistant's context is never part of them.
"""

from pydantic import BaseModel, Field

from services.types import Document


class OutlineItem(BaseModel):
    """Table of contents entry."""

    title: str = Field(..., description="Entry title")
    page_index: int = Field(..., ge=0, description="0-based target page")
    level: int = Field(..., ge=0, description="Nesting depth, 0 for top level")


class DocumentSummary(BaseModel):
    """Metadata for the open document."""

    title: str = Field(..., description="Document title")
    file_name: str = Field(..., description="Sanitized filename, also the progress key")
    kind: str = Field(..., description="File type (pdf, epub)")
    page_count: int = Field(..., ge=1, description="Number of pages")
    current_page: int = Field(..., ge=0, description="Restored or current page index")
    outline: list[OutlineItem] = Field(default_factory=list)

    @classmethod
    def from_document(cls, document: Document, current_page: int) -> "DocumentSummary":
        return cls(
            title=document.title,
            file_name=document.file_name,
            kind=document.kind.value,
            page_count=document.page_count,
            current_page=current_page,
            outline=[
                OutlineItem(title=e.title, page_index=e.page_index, level=e.level)
                for e in document.outline
            ],
        )
