"""Web scraper backend: fetch a page, list its links, convert it to Markdown."""

__version__ = "1.0.0"
