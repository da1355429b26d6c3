"""Print document builder for the system print flow."""
from typing import Dict, List


class PrintDocument:
    """Plain-text receipt page for the host print pipeline.

    Content is kept preformatted: whitespace and line breaks pass through
    untouched and the page is typeset in a monospaced face by the spooler's
    text filter. Layout is expressed as CUPS job options instead of markup,
    since stock CUPS has no HTML filter.
    """

    MIME_TYPE = "text/plain"
    SUFFIX = ".txt"

    def __init__(self, title: str = "Print Order", cpi: int = 12, lpi: int = 8, margin: int = 7):
        """Initialize document.

        Args:
            title: Job title shown by the spooler.
            cpi: Characters per inch (monospaced pitch).
            lpi: Lines per inch.
            margin: Page margin in points.
        """
        self.title = title
        self.cpi = cpi
        self.lpi = lpi
        self.margin = margin

    def render(self, content: str) -> str:
        """Render content to the text submitted to the spooler."""
        if not isinstance(content, str):
            raise TypeError(f"content must be str, not {type(content).__name__}")
        return content if content.endswith("\n") else content + "\n"

    def job_options(self) -> Dict[str, str]:
        """CUPS job options giving the page its print-oriented layout."""
        options = {
            "document-format": self.MIME_TYPE,
            "cpi": str(self.cpi),
            "lpi": str(self.lpi),
        }
        for side in ("left", "right", "top", "bottom"):
            options[f"page-{side}"] = str(self.margin)
        return options

    def option_args(self, flag: str = "-o") -> List[str]:
        args = []
        for key, value in self.job_options().items():
            args += [flag, f"{key}={value}"]
        return args
