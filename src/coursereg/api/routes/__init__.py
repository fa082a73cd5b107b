"""API route modules."""

from coursereg.api.routes import advisor, auth, courses, enrollments, users

__all__ = ["advisor", "auth", "courses", "enrollments", "users"]
