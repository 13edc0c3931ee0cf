# =============================================================================
# core/models/gallery.py - Project Gallery Schemas
# =============================================================================
# These models define the API contract for the public project gallery:
# - GalleryProjectCreate / GalleryProjectUpdate: owner input
# - GalleryModerationRequest: admin review decision
# - Pagination: list metadata returned beside project pages
#
# Projects enter as 'pending' and only 'approved' or 'featured' projects
# are publicly listed.
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field


class GalleryStatus(str, Enum):
    """
    Review states for a gallery project.

    Flow: pending -> approved | rejected, approved -> featured
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FEATURED = "featured"


PUBLIC_GALLERY_STATUSES = (GalleryStatus.APPROVED.value, GalleryStatus.FEATURED.value)


class GallerySort(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    POPULAR = "popular"
    VIEWS = "views"


class GalleryProjectBase(BaseModel):
    """Fields shared by create and update."""

    tagline: str | None = Field(default=None, max_length=200, description="One-line pitch")
    logo_url: str | None = Field(default=None, max_length=500)
    cover_image_url: str | None = Field(default=None, max_length=500)
    github_url: str | None = Field(default=None, max_length=500)
    demo_url: str | None = Field(default=None, max_length=500)
    video_url: str | None = Field(default=None, max_length=500)
    website_url: str | None = Field(default=None, max_length=500)
    category: str | None = Field(default=None, max_length=50)
    tags: list[str] | None = Field(default=None, max_length=20)
    technologies: list[str] | None = Field(default=None, max_length=30)
    readme_content: str | None = Field(default=None, max_length=50000)


class GalleryProjectCreate(GalleryProjectBase):
    """
    Schema for submitting a project to the gallery.

    Example:
        {
            "name": "DevMatch",
            "description": "Finds teammates by skill overlap",
            "technologies": ["react", "fastapi"]
        }
    """
    name: str = Field(..., min_length=1, max_length=100, description="Project name")
    description: str = Field(..., min_length=1, max_length=5000, description="What the project does")


class GalleryProjectUpdate(GalleryProjectBase):
    """Partial update; only provided fields are written."""
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=5000)


class GalleryModerationRequest(BaseModel):
    """Admin review decision for a project."""
    status: GalleryStatus
    moderation_notes: str | None = Field(default=None, max_length=2000)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=-(-total // limit) if limit else 0)
