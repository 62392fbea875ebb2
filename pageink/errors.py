"""Exception types raised by the annotation engine."""


class PageInkError(Exception):
    """Base class for all engine errors."""


class InvalidPage(PageInkError):
    """Page number outside [1, page_count]."""

    def __init__(self, page_number: int, page_count: int):
        super().__init__(f"Page {page_number} out of range (1-{page_count})")
        self.page_number = page_number
        self.page_count = page_count


class NotFound(PageInkError):
    """No annotation with the given id."""

    def __init__(self, annotation_id: str):
        super().__init__(f"Annotation not found: {annotation_id}")
        self.annotation_id = annotation_id


class NothingToUndo(PageInkError):
    pass


class NothingToRedo(PageInkError):
    pass


class EmbedFailure(PageInkError):
    """An annotation could not be baked or written to the document."""

    def __init__(self, annotation_id: str, page_number: int, reason: str):
        super().__init__(f"Page {page_number}, annotation {annotation_id}: {reason}")
        self.annotation_id = annotation_id
        self.page_number = page_number
        self.reason = reason


class RasterNotReady(PageInkError):
    """Pointer event for a page whose image has not been rasterized yet."""

    def __init__(self, page_number: int):
        super().__init__(f"Page {page_number} is not rasterized yet")
        self.page_number = page_number


class ExportInProgress(PageInkError):
    """Mutation attempted while an export pass is running."""
