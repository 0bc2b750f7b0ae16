from __future__ import annotations


class WikifactsError(Exception):
    pass


class ExtractionError(WikifactsError):
    """A named template could not be pulled out of a page's markup."""

    def __init__(self, template_name: str, message: str):
        super().__init__(message)
        self.template_name = template_name


class TemplateNotFound(ExtractionError):
    def __init__(self, template_name: str):
        super().__init__(template_name, f"No {{{{{template_name}}}}} block in markup")


class MalformedTemplate(ExtractionError):
    """Opening delimiter found but no balanced closer before end of markup."""

    def __init__(self, template_name: str, start: int, depth: int):
        super().__init__(
            template_name,
            f"Unbalanced {{{{{template_name}}}}} block starting at offset {start} (open depth {depth})",
        )
        self.start = start
        self.depth = depth


class CollaboratorFailure(WikifactsError):
    """A lookup/fetch/persist call failed for one title."""

    def __init__(self, title: str, cause: BaseException):
        super().__init__(f"{title}: {cause}")
        self.title = title
        self.cause = cause


class MediaWikiError(WikifactsError):
    pass
