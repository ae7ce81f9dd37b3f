"""사장노트 API - place registration, crawl and AI analysis lifecycle."""

__version__ = "0.3.0"
