"""packx: filter a source tree by extension and content, then bundle the matches for an LLM."""

__version__ = "1.4.0"
