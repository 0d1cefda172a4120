from wikirefs.schemas.schemas import (
    CreatorResponse, AttachmentResponse,
    RefResponse, RefsResponse,
    ResolvedTag, RenderResponse,
)

__all__ = [
    "CreatorResponse", "AttachmentResponse",
    "RefResponse", "RefsResponse",
    "ResolvedTag", "RenderResponse",
]
