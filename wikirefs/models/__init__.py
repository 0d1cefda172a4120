from wikirefs.models.models import (
    Attachment, Page, User,
    GRANT_OWNER, GRANT_PUBLIC, GRANT_RESTRICTED,
    STATUS_DELETED, STATUS_PUBLISHED,
)

__all__ = [
    "Attachment", "Page", "User",
    "GRANT_OWNER", "GRANT_PUBLIC", "GRANT_RESTRICTED",
    "STATUS_DELETED", "STATUS_PUBLISHED",
]
