"""Error taxonomy for the glossary backend.

The HTTP layer maps these to status codes:
NotFound -> 404, ValidationError / AdapterFailure -> 400,
InvalidTransition -> 409. Anything else is an internal failure.
"""

from __future__ import annotations


class GlossaryError(Exception):
    """Base class for every error the glossary core reports to callers."""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(GlossaryError):
    pass


class MissingTerm(ValidationError):
    def __init__(self):
        super().__init__("Term is required")


class DefinitionTooShort(ValidationError):
    def __init__(self, min_length: int):
        self.min_length = min_length
        super().__init__(f"Definition must be at least {min_length} characters")


class InvalidStatus(ValidationError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(
            "Valid status is required (draft, pending, published, rejected)"
        )


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


class NotFound(GlossaryError):
    pass


class TermNotFound(NotFound):
    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Term not found: {slug}")


class CandidateNotFound(NotFound):
    def __init__(self, candidate_id: str):
        self.candidate_id = candidate_id
        super().__init__(f"Contribution not found: {candidate_id}")


class EmptyCandidateSet(NotFound):
    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Term has no definitions: {slug}")


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class InvalidTransition(GlossaryError):
    def __init__(self, candidate_id: str, current: str, target: str):
        self.candidate_id = candidate_id
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move contribution {candidate_id} from {current} to {target}"
        )


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class AdapterFailure(GlossaryError):
    """Extraction produced no usable text; the message is the adapter's diagnostic."""


class UnsupportedFileType(AdapterFailure):
    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        super().__init__(
            f"Unsupported file type: {mime_type}. "
            "Supported types: PDF, JPEG, PNG, GIF, BMP, TIFF"
        )


class FileTooLarge(AdapterFailure):
    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        super().__init__(
            f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB"
        )


class ExtractionFailed(AdapterFailure):
    pass
